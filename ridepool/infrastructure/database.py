"""
Async SQLAlchemy engine and session factory.

Uses ``asyncpg`` as the PostgreSQL driver for non-blocking I/O.  The pool
is the single shared resource between request handlers and the
lifecycle sweeper; every seat mutation is a conditional write on top of
it, so no in-process locking is needed.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ridepool.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_size=10,
    max_overflow=10,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    # Load server-side defaults (created_at) right after INSERT so freshly
    # created rows serialise without a lazy load outside the greenlet.
    __mapper_args__ = {"eager_defaults": True}
