"""Payment webhook body shape shared by the worker and the receiver."""

import json
from decimal import Decimal
from typing import Any

from orderpay.common.dispatch import PaymentSimulationJob
from orderpay.common.errors import WebhookPayloadError
from orderpay.common.serialization import dumps, loads


PAYMENT_SUCCEEDED = "payment.succeeded"
PAYMENT_FAILED = "payment.failed"
WEBHOOK_PATH = "/api/webhooks/payments"


def build_payment_payload(job: PaymentSimulationJob, event_type: str = PAYMENT_SUCCEEDED) -> dict[str, Any]:
    return {
        "type": event_type,
        "data": {
            "orderNumber": job.order_number,
            "amount": Decimal(job.amount),
            "currency": job.currency,
        },
    }


def serialize_payload(payload: dict[str, Any]) -> bytes:
    """Serialize once; the signature covers exactly these bytes."""

    return dumps(payload).encode("utf-8")


def parse_payload(raw_body: bytes) -> dict[str, Any]:
    try:
        document = loads(raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise WebhookPayloadError(f"malformed JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise WebhookPayloadError("body is not a JSON object")
    return document


def extract_order_number(document: dict[str, Any]) -> str:
    """Read `data.orderNumber` from a parsed webhook body."""

    data = document.get("data")
    if not isinstance(data, dict):
        raise WebhookPayloadError("missing data object")
    order_number = data.get("orderNumber")
    if not isinstance(order_number, str) or not order_number:
        raise WebhookPayloadError("missing data.orderNumber")
    return order_number
