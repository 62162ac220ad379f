"""Inbound payment webhook handling.

Order of operations: verify the signature over the exact received bytes,
store the raw event, then interpret it. Re-serializing before verification
would break the signature, so the body is never touched before `verify`.
Bodies that are not UTF-8 are rejected unrecorded; the audit column keeps
text exactly as received and cannot hold them.
"""

from sqlalchemy.exc import SQLAlchemyError

from orderpay.common.errors import AuthenticationError, TransientStoreError, WebhookPayloadError
from orderpay.common.logging import logger, order_number_ctx
from orderpay.common.metrics import webhook_verifications_total
from orderpay.common.signing import WebhookSigner
from orderpay.common.state_machine import InvalidTransitionError
from orderpay.services.orders.service import OrderService, TransitionResult
from orderpay.services.payments.models import PaymentEvent
from orderpay.services.payments.payloads import (
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
    extract_order_number,
    parse_payload,
)


class WebhookReceiver:
    """Authenticates payment webhooks and applies them to orders."""

    def __init__(
        self,
        signer: WebhookSigner,
        orders: OrderService,
        session_factory,
        service_name: str = "orderpay",
    ) -> None:
        self.signer = signer
        self.orders = orders
        self.session_factory = session_factory
        self.service_name = service_name

    def _authenticate(self, signature: str | None, raw_body: bytes) -> None:
        try:
            self.signer.verify(signature, raw_body)
        except AuthenticationError as exc:
            webhook_verifications_total.labels(service=self.service_name, result="rejected").inc()
            logger.warning("webhook_rejected reason=%s", exc.reason)
            raise
        webhook_verifications_total.labels(service=self.service_name, result="accepted").inc()

    def _record(self, body: str, signature: str, order_number: str | None, event_type: str | None) -> PaymentEvent:
        event = PaymentEvent(order_number=order_number, event_type=event_type, raw_body=body, signature=signature)
        try:
            with self.session_factory() as db:
                db.add(event)
                db.commit()
        except SQLAlchemyError as exc:
            logger.error("payment_event_insert_failed order_number=%s error=%s", order_number, exc)
            raise TransientStoreError("payment event insert failed") from exc
        return event

    def _apply(self, event_type: str | None, order_number: str) -> TransitionResult | None:
        try:
            if event_type == PAYMENT_SUCCEEDED:
                return self.orders.mark_paid(order_number)
            if event_type == PAYMENT_FAILED:
                return self.orders.mark_failed(order_number)
        except InvalidTransitionError as exc:
            logger.warning("webhook_transition_rejected event_type=%s error=%s", event_type, exc)
            return None
        logger.info("webhook_event_ignored event_type=%s", event_type)
        return None

    def receive(self, signature: str | None, raw_body: bytes) -> PaymentEvent:
        """Verify, record and apply one webhook call."""

        self._authenticate(signature, raw_body)

        try:
            body = raw_body.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("webhook_payload_invalid reason=not_utf8")
            raise WebhookPayloadError("body is not valid UTF-8") from exc

        document = None
        payload_error = None
        try:
            document = parse_payload(raw_body)
        except WebhookPayloadError as exc:
            payload_error = exc

        order_number = None
        event_type = None
        if document is not None:
            data = document.get("data")
            if isinstance(data, dict) and isinstance(data.get("orderNumber"), str):
                order_number = data["orderNumber"]
            if isinstance(document.get("type"), str):
                event_type = document["type"]

        event = self._record(body, signature, order_number, event_type)
        logger.info("payment_event_recorded event_id=%s event_type=%s", event.id, event_type)

        if payload_error is not None:
            logger.warning("webhook_payload_invalid reason=%s", payload_error.reason)
            raise payload_error
        order_number = extract_order_number(document)
        order_number_ctx.set(order_number)
        self._apply(event_type, order_number)
        return event
