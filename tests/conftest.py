"""Shared fixtures: in-memory store, settings, app and test client."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from orderpay.common.config import Settings
from orderpay.common.db import create_schema, make_engine, make_session_factory
from orderpay.common.signing import WebhookSigner
from orderpay.services.api.main import create_app


SECRET = "test-webhook-secret"


class BrokenSession:
    """Session stand-in whose every statement fails like a lost connection."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def add(self, instance):
        pass

    def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    def commit(self):
        raise OperationalError("COMMIT", {}, Exception("connection refused"))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        webhook_shared_secret=SECRET,
        webhook_base_url="http://testserver",
        payment_simulation_delay_seconds=0,
        log_level="WARNING",
    )


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    create_schema(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def broken_session_factory():
    return BrokenSession


@pytest.fixture
def signer() -> WebhookSigner:
    return WebhookSigner(SECRET)


@pytest.fixture
def app(settings, session_factory):
    """App without the background worker so queued jobs stay observable."""

    return create_app(settings, session_factory=session_factory, run_worker=False)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
