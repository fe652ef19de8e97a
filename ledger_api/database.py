"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - Base: Declarative base class that all ORM models inherit from
  - create_engine_and_sessionmaker(): builds the async engine and session
    factory for a given DATABASE_URL (called once by build_context())
  - get_db(): FastAPI dependency that provides a session per request

Session lifecycle:
  Each request gets its own session via get_db(). The session commits on
  success and rolls back on any exception. Posting a transaction inserts the
  transaction row and updates the account balance inside this one session, so
  a failure in the second write also discards the first.
"""

from datetime import datetime, timezone

from fastapi import Request
from sqlalchemy import DateTime
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Provides metadata tracking (used by create_all at startup) and the
    common declarative mapping features.
    """
    pass


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime column stored as naive UTC.

    SQLite keeps DateTime values as text without an offset, so aware values
    would lose their offset and sort by wall-clock time. Values are converted
    to UTC on the way in and come back tagged as UTC.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("UTCDateTime requires a timezone-aware datetime")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


def create_engine_and_sessionmaker(
    database_url: str,
    echo: bool = False,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Create the async engine and its session factory.

    expire_on_commit=False prevents lazy-load errors after commit: without
    it, touching an attribute on a committed object would trigger a
    synchronous DB call, which fails in async context.

    Args:
        database_url: SQLAlchemy URL, e.g. "sqlite+aiosqlite:///./data/ledger.db".
        echo: Log every SQL statement (enabled when DEBUG is set).
    """
    engine = create_async_engine(database_url, echo=echo)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return engine, session_factory


async def get_db(request: Request):
    """
    FastAPI dependency that provides a database session.

    The session factory comes from the AppContext stored on app.state at
    startup. The session is committed on success and rolled back on any
    exception, then closed when the request completes.
    """
    session_factory = request.app.state.context.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
