"""Service test fixtures — async DB, fake chain, ingestor factory and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched so readiness probes hit the test engine
    - system_state row created before any ingestor runs (as the lifespan does)

Design Decisions:
    - SQLite in-memory: fast, no external dependency; ON CONFLICT DO NOTHING is
      supported by both SQLite and PostgreSQL dialect inserts
    - Assertions read through fresh sessions: the identity map of a long-lived
      session would hide writes made by the service under test
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from x402_indexer.db.base import Base
from x402_indexer.infrastructure.database import get_db, DatabaseSessionManager
import x402_indexer.infrastructure.database as db_module
import x402_indexer.models  # noqa: F401
from x402_indexer.main import app
from x402_indexer.services.ingestor import Ingestor, IngestorConfig
from x402_indexer.services.system_state_store import SystemStateStore

from tests.factories import CONTRACT
from tests.services.fake_chain import FakeChainClient


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def initialized(test_session_factory):
    """system_state row with confirmation depth 3."""
    async with test_session_factory() as db:
        await SystemStateStore(db).ensure_initialized(3)
        await db.commit()


@pytest.fixture
def fake_chain():
    return FakeChainClient(head=100)


@pytest.fixture
def make_ingestor(test_session_factory, fake_chain, initialized):
    """Build an Ingestor over the test DB and fake chain; kwargs override config."""
    def _make(**overrides) -> Ingestor:
        values = {
            "contract_address": CONTRACT,
            "start_block": 1,
            "confirmation_blocks": 3,
            "chunk_size": 2000,
            "poll_interval_seconds": 0.01,
        }
        values.update(overrides)
        return Ingestor(test_session_factory, fake_chain, IngestorConfig(**values))
    return _make


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    app.state.ingestor = None
    db_module.db_manager = original_manager
