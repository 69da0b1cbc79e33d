"""
Database engine and session management.

Provides the async engine, the session factory used by request handlers and
by the outbox dispatcher, and helpers for bounded lock waits.

Locking model
-------------
* **PostgreSQL**: rows are locked with ``SELECT … FOR UPDATE`` and every
  write transaction sets ``lock_timeout`` so a blocked caller gives up after
  ``LOCK_TIMEOUT_SECONDS`` instead of queueing forever.
* **SQLite** (local development and tests): there are no row locks, so every
  transaction is opened with ``BEGIN IMMEDIATE``, which takes the database
  write lock up front and serializes writers. The driver's busy timeout plays
  the role of ``lock_timeout``.
"""

from collections.abc import AsyncGenerator
from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from estate_ledger.core.config import settings

_LOCK_TIMEOUT_SQLSTATE = "55P03"
_LOCK_TIMEOUT_MESSAGES = (
    "database is locked",
    "lock timeout",
    "could not obtain lock",
    "canceling statement due to lock timeout",
)


def _install_sqlite_listeners(engine: AsyncEngine) -> None:
    # aiosqlite wraps a sync sqlite3 connection, so the events are registered
    # on the sync engine.
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        # Let SQLAlchemy issue BEGIN itself (see _begin_immediate).
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(
    url: Optional[str] = None,
    lock_timeout_seconds: Optional[float] = None,
) -> AsyncEngine:
    """
    Create the async engine for ``url`` (defaults to ``settings.DATABASE_URL``).

    SQLite URLs get the ``BEGIN IMMEDIATE`` / foreign-key listeners and a busy
    timeout of ``lock_timeout_seconds``; PostgreSQL URLs get the pool tuning
    from settings.
    """
    url = url or settings.DATABASE_URL
    if lock_timeout_seconds is None:
        lock_timeout_seconds = settings.LOCK_TIMEOUT_SECONDS

    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=settings.DEBUG,
            connect_args={
                "check_same_thread": False,
                "timeout": lock_timeout_seconds,
            },
        )
        _install_sqlite_listeners(engine)
        return engine

    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False keeps loaded attributes usable after commit;
    # an expired attribute would need a lazy load, which async sessions
    # cannot perform implicitly.
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = build_engine()
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an async database session.

    The session is closed when the request finishes; a transaction left open
    by a failing handler is rolled back on close.
    """
    async with AsyncSessionLocal() as session:
        yield session


async def apply_lock_timeout(session: AsyncSession, seconds: float) -> None:
    """
    Bound row-lock waits for the current transaction.

    Must be called after the transaction has begun. A no-op on SQLite, where
    the busy timeout configured on the connection applies instead.
    """
    bind = session.get_bind()
    if bind.dialect.name != "postgresql":
        return
    millis = max(int(seconds * 1000), 1)
    # SET LOCAL does not accept bind parameters.
    await session.execute(text(f"SET LOCAL lock_timeout = '{millis}ms'"))


def is_lock_timeout(exc: BaseException) -> bool:
    """True when ``exc`` means a lock wait exceeded its bound."""
    if not isinstance(exc, (OperationalError, DBAPIError)):
        return False
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        if getattr(orig, attr, None) == _LOCK_TIMEOUT_SQLSTATE:
            return True
    cause = getattr(orig, "__cause__", None)
    if getattr(cause, "sqlstate", None) == _LOCK_TIMEOUT_SQLSTATE:
        return True
    message = str(orig if orig is not None else exc).lower()
    return any(fragment in message for fragment in _LOCK_TIMEOUT_MESSAGES)
