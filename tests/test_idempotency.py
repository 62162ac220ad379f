"""Idempotency store: first writer wins, lookups fail open."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, select

from orderpay.common.db import create_schema, make_engine, make_session_factory
from orderpay.common.errors import TransientStoreError
from orderpay.services.orders.idempotency import IdempotencyStore, StoredResponse
from orderpay.services.orders.models import IdempotencyRecord


def _count(session_factory) -> int:
    with session_factory() as db:
        return db.execute(select(func.count()).select_from(IdempotencyRecord)).scalar_one()


def test_miss_then_hit(session_factory):
    store = IdempotencyStore(session_factory)
    assert store.try_get("k1") is None

    store.save("k1", 201, '{"id":"1"}')

    assert store.try_get("k1") == StoredResponse(status_code=201, body='{"id":"1"}')
    assert store.try_get("K1") is None


def test_duplicate_save_is_absorbed_and_first_record_wins(session_factory):
    """A losing writer gets no error and does not overwrite the stored answer."""

    store = IdempotencyStore(session_factory)
    store.save("k1", 201, '{"first":true}')
    store.save("k1", 201, '{"second":true}')

    assert store.try_get("k1").body == '{"first":true}'
    assert _count(session_factory) == 1


def test_lookup_failure_degrades_to_miss(broken_session_factory):
    store = IdempotencyStore(broken_session_factory)
    assert store.try_get("k1") is None


def test_save_store_failure_is_transient(broken_session_factory):
    store = IdempotencyStore(broken_session_factory)

    with pytest.raises(TransientStoreError) as exc_info:
        store.save("k1", 201, "{}")

    assert exc_info.value.status_code == 503
    assert exc_info.value.to_payload() == {"error": "Store unavailable", "reason": "idempotency save failed"}


def test_concurrent_writers_leave_one_record(tmp_path):
    """Unique-index enforcement alone decides the winner across threads."""

    engine = make_engine(f"sqlite:///{tmp_path / 'idem.db'}")
    create_schema(engine)
    session_factory = make_session_factory(engine)
    store = IdempotencyStore(session_factory)
    writers = 8
    barrier = threading.Barrier(writers)

    def write(i: int) -> None:
        barrier.wait()
        store.save("shared-key", 201, f'{{"writer":{i}}}')

    with ThreadPoolExecutor(max_workers=writers) as pool:
        list(pool.map(write, range(writers)))

    assert _count(session_factory) == 1
    stored = store.try_get("shared-key")
    assert stored.body in {f'{{"writer":{i}}}' for i in range(writers)}
    engine.dispose()
