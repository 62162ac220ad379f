"""Idempotency records keyed by the client-supplied `Idempotency-Key`.

The unique index on `idempotency_records.key` is the only concurrency guard:
no application lock is taken. Lookups fail open, so a store fault turns into
a miss rather than blocking retried requests; that trades conflict safety for
availability while the store is unhealthy.
"""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from orderpay.common.errors import ConflictError, TransientStoreError
from orderpay.common.logging import logger
from orderpay.common.metrics import idempotency_conflicts_total, idempotency_lookup_failures_total
from orderpay.services.orders.models import IdempotencyRecord


@dataclass(frozen=True)
class StoredResponse:
    status_code: int
    body: str


class IdempotencyStore:
    """Maps idempotency keys to the first response produced for them."""

    def __init__(self, session_factory, service_name: str = "orderpay") -> None:
        self.session_factory = session_factory
        self.service_name = service_name

    def try_get(self, key: str) -> StoredResponse | None:
        """Return the stored response for `key`, or None when absent or unreadable."""

        try:
            with self.session_factory() as db:
                record = db.execute(
                    select(IdempotencyRecord).where(IdempotencyRecord.key == key)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            idempotency_lookup_failures_total.labels(service=self.service_name).inc()
            logger.error("idempotency_lookup_failed key=%s error=%s", key, exc)
            return None
        if record is None:
            return None
        return StoredResponse(status_code=record.status_code, body=record.response_body)

    def _insert(self, key: str, status_code: int, body: str) -> None:
        try:
            with self.session_factory() as db:
                db.add(IdempotencyRecord(key=key, status_code=status_code, response_body=body))
                db.commit()
        except IntegrityError as exc:
            raise ConflictError(f"idempotency key already stored: {key}") from exc
        except SQLAlchemyError as exc:
            logger.error("idempotency_save_failed key=%s error=%s", key, exc)
            raise TransientStoreError("idempotency save failed") from exc

    def save(self, key: str, status_code: int, body: str) -> None:
        """Store the response for `key`; a concurrent winner's record stays authoritative."""

        try:
            self._insert(key, status_code, body)
        except ConflictError:
            idempotency_conflicts_total.labels(service=self.service_name).inc()
            logger.warning("idempotency_key_already_stored key=%s", key)
