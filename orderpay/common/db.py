"""Database bootstrap helpers."""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass


def make_engine(database_url: str) -> Engine:
    """Create the single SQLAlchemy engine for this process."""

    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)
    connect_args = {"check_same_thread": False}
    if database_url.endswith("://") or ":memory:" in database_url:
        # In-memory SQLite lives and dies with one connection.
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    # `expire_on_commit=False` keeps ORM objects readable after commit in handlers.
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    """Create all tables for local runs and tests (production uses Alembic)."""

    # Model modules register themselves on Base.metadata when imported.
    from orderpay.services.orders import models as _orders  # noqa: F401
    from orderpay.services.payments import models as _payments  # noqa: F401

    Base.metadata.create_all(engine)
