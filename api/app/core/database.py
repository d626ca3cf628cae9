"""Async database engine, session management and the per-court write lock.

The relational ledger is the only coordination point between service
instances. Writers that must not interleave on the same court and date
take `slot_lock` inside their transaction; nothing is serialised in process.
"""

import logging
from collections.abc import AsyncGenerator
from datetime import date

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings

logger = logging.getLogger(__name__)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for `url`.

    SQLite (used by the test-suite and local runs) has no advisory locks, so
    every transaction is opened with BEGIN IMMEDIATE: the database-wide write
    lock is taken up front and check-then-insert cannot interleave.
    """
    if not _is_sqlite(url):
        return create_async_engine(url, echo=echo, pool_size=20, max_overflow=10, pool_pre_ping=True)

    sqlite_engine = create_async_engine(url, echo=echo, connect_args={"timeout": 30})

    @event.listens_for(sqlite_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _):
        # Hand transaction control to SQLAlchemy so the BEGIN below is ours
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sqlite_engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return sqlite_engine


engine = build_engine(settings.database_url, echo=settings.database_echo)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session. Used as a FastAPI dependency."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def slot_lock(db: AsyncSession, court_id: int, booking_date: date) -> None:
    """Enter the exclusive section for (court_id, booking_date).

    Must be called inside an open transaction; the lock is released when the
    transaction commits or rolls back. On PostgreSQL this is a transaction
    scoped advisory lock keyed by the pair. SQLite transactions already hold
    the database write lock from BEGIN IMMEDIATE.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        await db.execute(
            text("SELECT pg_advisory_xact_lock(:court_id, :day)"),
            {"court_id": court_id, "day": booking_date.toordinal()},
        )
    elif dialect != "sqlite":
        raise RuntimeError(f"No slot lock available for dialect {dialect!r}")
    logger.debug("Slot lock held for court=%s date=%s", court_id, booking_date)
