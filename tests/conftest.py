"""
Shared test fixtures for the trust accounting test suite.

Sets up an async SQLite in-memory database, overrides the FastAPI database
dependency, and provides an in-memory trust ledger and a canned document
extractor that tests can swap in through dependency overrides.
"""

import os

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# ---- Environment overrides MUST come before any app imports ----
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["FIELD_ENCRYPTION_KEY"] = "test-encryption-key-for-unit-tests"
os.environ["LEDGER_API_KEY"] = ""
os.environ["LLM_API_KEY"] = ""
os.environ["ENVIRONMENT"] = "test"

from app.database import Base, get_db  # noqa: E402
from app.dependencies import get_ledger_client  # noqa: E402
from app.documents.extractor import get_extractor  # noqa: E402
from app.main import app  # noqa: E402
from tests.factories import create_client, create_matter  # noqa: E402
from tests.fakes import FakeExtractor, FakeLedger  # noqa: E402

# ---------------------------------------------------------------------------
# Async engine & session factory for the test database
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite+aiosqlite://"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
TestSession = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


# SQLite does not enforce FK constraints by default, and the driver's own
# transaction handling breaks SAVEPOINT; take over BEGIN explicitly.
@event.listens_for(test_engine.sync_engine, "connect")
def _configure_sqlite(dbapi_conn, _connection_record):
    dbapi_conn.isolation_level = None
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@event.listens_for(test_engine.sync_engine, "begin")
def _begin_sqlite(conn):
    conn.exec_driver_sql("BEGIN")


# ---------------------------------------------------------------------------
# Database lifecycle
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Create all tables before each test, drop them afterward."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A session for direct service-layer tests. Do not mix with API calls in one test."""
    async with TestSession() as session:
        yield session


# ---------------------------------------------------------------------------
# Dependency override
# ---------------------------------------------------------------------------
async def _override_get_db():
    async with TestSession() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = _override_get_db


# ---------------------------------------------------------------------------
# HTTP client fixture
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def fake_ledger() -> FakeLedger:
    """Route every request's ledger dependency to one in-memory ledger."""
    ledger = FakeLedger()
    app.dependency_overrides[get_ledger_client] = lambda: ledger
    yield ledger
    app.dependency_overrides.pop(get_ledger_client, None)

@pytest_asyncio.fixture
async def fake_extractor() -> FakeExtractor:
    extractor = FakeExtractor({"transactions": [], "holds": []})
    app.dependency_overrides[get_extractor] = lambda: extractor
    yield extractor
    app.dependency_overrides.pop(get_extractor, None)


# ---------------------------------------------------------------------------
# Convenience fixtures: records already in the DB
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def sample_client(client: AsyncClient) -> dict:
    return await create_client(client, name="Alice Example")


@pytest_asyncio.fixture
async def sample_matter(client: AsyncClient, sample_client: dict) -> dict:
    return await create_matter(client, sample_client["id"], name="Example Estate")
