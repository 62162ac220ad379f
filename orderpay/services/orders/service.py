"""Order persistence and status progression.

Orders are created in `Pending` by the create-order gate and only ever move
forward through `orderpay.common.state_machine`, driven by verified payment
webhooks.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from orderpay.common.errors import DuplicateOrderError, OrderNotFoundError, TransientStoreError
from orderpay.common.logging import logger
from orderpay.common.metrics import orders_created_total
from orderpay.common.state_machine import FAILED, PAID, PENDING, sources_for, validate_transition
from orderpay.services.orders.models import Order


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of applying a status change to an order."""

    order: Order | None
    changed: bool


class OrderService:
    """Owns order rows and their Pending -> Paid/Failed progression."""

    def __init__(self, session_factory, service_name: str = "orderpay") -> None:
        self.session_factory = session_factory
        self.service_name = service_name

    def create(self, order_number: str, amount: Decimal, currency: str = "USD") -> Order:
        """Insert a new `Pending` order; order numbers are unique."""

        order = Order(order_number=order_number, amount=amount, currency=currency, status=PENDING)
        try:
            with self.session_factory() as db:
                db.add(order)
                db.commit()
        except IntegrityError as exc:
            raise DuplicateOrderError(order_number) from exc
        except SQLAlchemyError as exc:
            logger.error("order_insert_failed order_number=%s error=%s", order_number, exc)
            raise TransientStoreError("order insert failed") from exc
        orders_created_total.labels(service=self.service_name).inc()
        logger.info("order_created order_number=%s amount=%s currency=%s", order_number, amount, currency)
        return order

    def get(self, order_number: str) -> Order:
        try:
            with self.session_factory() as db:
                order = db.execute(select(Order).where(Order.order_number == order_number)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("order_lookup_failed order_number=%s error=%s", order_number, exc)
            raise TransientStoreError("order lookup failed") from exc
        if order is None:
            raise OrderNotFoundError(order_number)
        return order

    def list_orders(self, limit: int = 100) -> list[Order]:
        """Most recent orders first."""

        try:
            with self.session_factory() as db:
                return list(db.execute(select(Order).order_by(Order.created_at.desc()).limit(limit)).scalars())
        except SQLAlchemyError as exc:
            logger.error("order_list_failed error=%s", exc)
            raise TransientStoreError("order lookup failed") from exc

    def _transition(self, order_number: str, new_status: str) -> TransitionResult:
        """Apply one validated status change with a conditional single-row update.

        The write is guarded by the current status so a concurrent change can
        never be overwritten. A repeat of an already-applied change is a no-op.
        """

        try:
            with self.session_factory() as db:
                result = db.execute(
                    update(Order)
                    .where(Order.order_number == order_number, Order.status.in_(sorted(sources_for(new_status))))
                    .values(status=new_status, updated_at=datetime.now(timezone.utc))
                )
                db.commit()
                order = db.execute(select(Order).where(Order.order_number == order_number)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("order_status_change_failed order_number=%s status=%s error=%s", order_number, new_status, exc)
            raise TransientStoreError("order status update failed") from exc

        if result.rowcount == 1:
            logger.info("order_status_changed order_number=%s status=%s", order_number, new_status)
            return TransitionResult(order=order, changed=True)
        if order is None:
            logger.warning("order_status_change_unknown_order order_number=%s status=%s", order_number, new_status)
            return TransitionResult(order=None, changed=False)
        if order.status == new_status:
            logger.info("order_status_already_applied order_number=%s status=%s", order_number, new_status)
            return TransitionResult(order=order, changed=False)
        validate_transition(order.status, new_status)
        # Status moved between the update and the read.
        return TransitionResult(order=order, changed=False)

    def mark_paid(self, order_number: str) -> TransitionResult:
        return self._transition(order_number, PAID)

    def mark_failed(self, order_number: str) -> TransitionResult:
        return self._transition(order_number, FAILED)
