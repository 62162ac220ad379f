"""Create-order gate: exactly-once effect per client idempotency key.

Flow for a first-time key: create the order, enqueue one payment simulation
job, serialize the response once, store it against the key, return it. Later
requests with the same key get the stored status and bytes back untouched.
If storing the response fails, the failure is logged and the 201 still goes
out: the order exists and its payment is already queued.

The order and the job exist before the idempotency record does. A crash in
that window lets a client retry create a second order; closing it needs the
record and the order written atomically, which changes observable behavior.
"""

import json
from dataclasses import dataclass, field

from pydantic import ValidationError

from orderpay.common.dispatch import DispatchQueue, PaymentSimulationJob
from orderpay.common.errors import ClientError, TransientStoreError
from orderpay.common.logging import idempotency_key_ctx, logger, order_number_ctx
from orderpay.common.metrics import idempotent_replays_total
from orderpay.common.serialization import loads
from orderpay.services.orders.idempotency import IdempotencyStore
from orderpay.services.orders.schemas import OrderCreateRequest, OrderResponse
from orderpay.services.orders.service import OrderService


IDEMPOTENCY_HEADER = "Idempotency-Key"


class InvalidOrderRequest(ClientError):
    status_code = 422

    def __init__(self, details: list[dict]) -> None:
        super().__init__("Invalid request body")
        self.details = details

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "InvalidOrderRequest":
        return cls([{"loc": list(error["loc"]), "msg": error["msg"]} for error in exc.errors(include_url=False)])

    def to_payload(self) -> dict:
        return {"error": self.message, "details": self.details}


@dataclass(frozen=True)
class IntakeResult:
    status_code: int
    body: str
    replayed: bool
    headers: dict[str, str] = field(default_factory=dict)


class OrderIntake:
    """Runs the idempotency gate in front of order creation."""

    def __init__(
        self,
        idempotency: IdempotencyStore,
        orders: OrderService,
        queue: DispatchQueue,
        service_name: str = "orderpay",
    ) -> None:
        self.idempotency = idempotency
        self.orders = orders
        self.queue = queue
        self.service_name = service_name

    @staticmethod
    def _parse(raw_body: bytes) -> OrderCreateRequest:
        # Number literals are read as Decimal so large amounts keep every digit.
        try:
            document = loads(raw_body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise InvalidOrderRequest([{"loc": [], "msg": f"Invalid JSON: {exc}"}]) from exc
        try:
            return OrderCreateRequest.model_validate(document)
        except ValidationError as exc:
            raise InvalidOrderRequest.from_validation_error(exc) from exc

    def handle(self, idempotency_key: str | None, raw_body: bytes) -> IntakeResult:
        """Create an order once per key, replaying the first response afterwards."""

        if idempotency_key is None or not idempotency_key.strip():
            raise ClientError(f"Missing {IDEMPOTENCY_HEADER} header")
        idempotency_key_ctx.set(idempotency_key)

        stored = self.idempotency.try_get(idempotency_key)
        if stored is not None:
            idempotent_replays_total.labels(service=self.service_name).inc()
            logger.info("idempotent_replay status_code=%s", stored.status_code)
            return IntakeResult(
                status_code=stored.status_code,
                body=stored.body,
                replayed=True,
                headers={"Idempotent-Replayed": "true"},
            )

        req = self._parse(raw_body)
        order_number_ctx.set(req.order_number)

        order = self.orders.create(req.order_number, req.amount, req.currency)
        self.queue.enqueue(PaymentSimulationJob(order.order_number, order.amount, order.currency))
        logger.info("payment_simulation_enqueued queue_depth=%s", self.queue.depth())

        body = OrderResponse.model_validate(order).to_json()
        try:
            self.idempotency.save(idempotency_key, 201, body)
        except TransientStoreError as exc:
            # The order and its job already exist; answer with them and lose only the replay record.
            logger.error("idempotency_save_failed replay_unavailable=true error=%s", exc.reason)
        return IntakeResult(
            status_code=201,
            body=body,
            replayed=False,
            headers={"Location": f"/api/orders/{order.order_number}"},
        )
