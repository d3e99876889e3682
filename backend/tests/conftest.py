"""
TrackCode Backend — Test Configuration (conftest.py)
======================================================

Fixtures:
    mock_db_session   AsyncMock session for pure unit tests
    db_engine         real aiosqlite database in tmp_path, schema created
    session_factory   async_sessionmaker bound to db_engine
    db_session        one session on db_engine, rolled back afterwards
    make_client       inserts + commits a client row directly
    make_shipment     inserts + commits a shipment row with a given code
    test_client       httpx AsyncClient against the app, with
                      get_db_session overridden to use db_engine
"""

import os
import tempfile

# Settings are read at import time; point them at throwaway values first
os.environ["DATABASE_URL"] = (
    "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(prefix="trackcode_test_"), "app.db")
)
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["PREFIX_RETRY_MIN_WAIT"] = "0"
os.environ["PREFIX_RETRY_MAX_WAIT"] = "0"

from typing import Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

import trackcode.models  # noqa: E402,F401
from trackcode.database import Base, build_engine, get_db_session  # noqa: E402
from trackcode.models.client import Client  # noqa: E402
from trackcode.models.shipment import Shipment  # noqa: E402


@pytest.fixture
def mock_db_session():
    """
    A mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = client
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'trackcode.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_client(session_factory):
    """Insert a committed client row, bypassing the services."""

    async def _make(name: str, prefix: Optional[str], last_sequence: int = 0) -> Client:
        async with session_factory() as session:
            client = Client(name=name, prefix=prefix, last_sequence=last_sequence)
            session.add(client)
            await session.commit()
            return client

    return _make


@pytest.fixture
def make_shipment(session_factory):
    """Insert a committed shipment row, bypassing the allocator."""

    async def _make(client_id: int, tracking_code: str) -> Shipment:
        async with session_factory() as session:
            shipment = Shipment(
                client_id=client_id,
                tracking_code=tracking_code,
                origin="Monterrey",
                destination="Saltillo",
            )
            session.add(shipment)
            await session.commit()
            return shipment

    return _make


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient routed straight into the FastAPI app.

    Requests get sessions from the test database with the same
    commit-on-success / rollback-on-error behavior as get_db_session.
    """
    from trackcode.main import app

    async def _override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
