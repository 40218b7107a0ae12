import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from fastapi import Request
from sqlalchemy import BigInteger, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

logger = logging.getLogger(__name__)

Base = declarative_base()

MONEY_PLACES = 8
MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_PLACES)
MINOR_UNITS = 10 ** MONEY_PLACES


def to_money(value) -> Optional[Decimal]:
    """Round any numeric input to the 8-place fixed-point grid."""
    if value is None:
        return None
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


class Money(TypeDecorator):
    """Decimal amounts persisted as integer minor units (1e-8)."""

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(to_money(value) * MINOR_UNITS)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return (Decimal(int(value)) / MINOR_UNITS).quantize(MONEY_QUANTUM)


class Database:
    """Storage client owning the engine and session factory.

    Built by the process entry point and handed to the application, so that
    importing a module never opens a connection.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def create_all(self):
        # Import every model so the metadata is complete
        from lendfi import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Tables ready: %s", ", ".join(sorted(Base.metadata.tables)))

    def drop_all(self):
        Base.metadata.drop_all(bind=self.engine)

    def session(self):
        return self.SessionLocal()

    def dispose(self):
        self.engine.dispose()
        logger.info("Database connections closed")


def get_db(request: Request):
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
