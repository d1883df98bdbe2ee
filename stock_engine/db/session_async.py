# stock_engine/db/session_async.py
"""Async SQLAlchemy session utilities."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from stock_engine.core.config import settings

T = TypeVar("T")


def _build_engine() -> AsyncEngine:
    if not settings.is_sqlite:
        return create_async_engine(settings.ASYNC_DATABASE_URL, pool_pre_ping=True)

    sqlite_engine = create_async_engine(
        settings.ASYNC_DATABASE_URL,
        poolclass=NullPool,
        connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS},
    )

    # SQLite ignores FOR UPDATE. Taking the write lock when the transaction
    # begins makes a locked read block until the current writer finishes.
    @event.listens_for(sqlite_engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine.sync_engine, "begin")
    def _begin_immediate(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return sqlite_engine


async_engine: AsyncEngine = _build_engine()

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    expire_on_commit=False,
    autoflush=False,
)


async def commit(session: AsyncSession) -> None:
    """Commit and rollback on failure."""
    try:
        await session.commit()
    except Exception:
        await rollback(session)
        raise


async def rollback(session: AsyncSession) -> None:
    """Rollback active transaction if needed."""
    if session.in_transaction():
        await session.rollback()


async def run_in_transaction(
    operation: Callable[[AsyncSession], Awaitable[T]],
) -> T:
    """Execute an async operation within a managed transaction."""
    async with AsyncSessionLocal() as session:
        try:
            result = await operation(session)
            await session.commit()
            return result
        except Exception:
            await session.rollback()
            raise
