"""
TrackCode Backend — Database Session Management
==================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   One async engine per process with connection pooling; a session per
       request that commits on success and rolls back on error.
Who:   Route handlers via Depends(get_db_session); tests build their own
       engine with build_engine().

Transactions and the allocator:
    Tracking-code issuance runs an UPDATE ... RETURNING inside the request
    session. The client row stays locked until get_db_session commits, so the
    counter increment and the shipment insert land (or vanish) together.

SQLite:
    The stdlib driver manages BEGIN on its own and breaks SAVEPOINT. For
    SQLite URLs we switch the driver to autocommit and emit BEGIN from
    SQLAlchemy's "begin" event, the recipe from the SQLAlchemy dialect docs.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from trackcode.config import settings


def install_sqlite_transaction_hooks(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN/SAVEPOINT on SQLite connections."""

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    """
    Create an async engine configured from settings.

    Pool sizing is only passed to server databases; SQLite pools reject
    max_overflow for in-memory URLs and gain nothing from it for files.
    """
    kwargs: Dict[str, Any] = {
        "echo": settings.log_level == "DEBUG",
    }
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        # Writers queue on the database lock instead of failing fast
        kwargs["connect_args"] = {"timeout": 30}
    else:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    kwargs.update(overrides)

    engine = create_async_engine(database_url, **kwargs)
    if is_sqlite:
        install_sqlite_transaction_hooks(engine)
    return engine


# ── Engine & Session Factory ──────────────────────────────────────────────
engine = build_engine(settings.database_url)

# expire_on_commit=False keeps loaded attributes readable after commit,
# outside the session context
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Opens a session from the factory
        2. Yields it to the route handler
        3. Commits on success, rolls back on any exception
        4. Always closes the session (connection back to the pool)

    A rollback here also undoes any tracking-code increment made during the
    request, so a failed shipment insert never burns a sequence number.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Close all pooled connections. Called from the application lifespan."""
    await engine.dispose()
