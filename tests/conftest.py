"""
Pytest configuration

Every test gets its own in-memory database; external services are faked.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from bluecarbon.core.config import Settings
from bluecarbon.core.database import init_db, make_session_factory
from bluecarbon.handlers.minting import MintOrchestrator
from bluecarbon.models.profile import UserRole
from factories import create_profile
from mocks import FakeIdentity, FakeLedger

TEST_DATABASE_URL = "sqlite+aiosqlite://"

ADMIN_TOKEN = "admin-token"
OWNER_TOKEN = "owner-token"
STRANGER_TOKEN = "stranger-token"


def _memory_engine():
    return create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def settings():
    """Settings with a short ledger timeout"""
    return Settings(ledger_timeout_seconds=0.2, ledger_cluster="devnet")


@pytest.fixture
async def engine():
    db_engine = _memory_engine()
    await init_db(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as db_session:
        yield db_session


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def orchestrator(session_factory, ledger, settings):
    return MintOrchestrator(session_factory, ledger, settings)


# API fixtures
@pytest.fixture
def identity():
    fake = FakeIdentity()
    fake.add_user(ADMIN_TOKEN, "admin-1", "admin@example.org")
    fake.add_user(OWNER_TOKEN, "owner-1", "owner@example.org")
    fake.add_user(STRANGER_TOKEN, "stranger-1", "stranger@example.org")
    return fake


@pytest.fixture
def api_ledger():
    return FakeLedger()


@pytest.fixture
def client(identity, api_ledger):
    """FastAPI test client on a fresh in-memory database with an admin profile"""
    from main import create_app

    db_engine = _memory_engine()
    app = create_app(ledger=api_ledger, identity=identity, bind=db_engine)
    session_factory = make_session_factory(db_engine)

    async def seed():
        async with session_factory() as db_session:
            await create_profile(db_session, "admin-1", role=UserRole.ADMIN)

    with TestClient(app) as test_client:
        test_client.portal.call(seed)
        yield test_client


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def owner_headers():
    return {"Authorization": f"Bearer {OWNER_TOKEN}"}


@pytest.fixture
def stranger_headers():
    return {"Authorization": f"Bearer {STRANGER_TOKEN}"}
