"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from batch.ledger import RunLedger
from batch.metrics import BatchMetrics
from batch.registry import build_default_registry
from core.config import Settings
from core.database import create_engine, create_session_factory
from models.base import Base


@pytest.fixture
def database_url(tmp_path) -> str:
    """File-backed SQLite database, one per test"""
    return f"sqlite+aiosqlite:///{tmp_path}/batch_test.db"


@pytest_asyncio.fixture(scope="function")
async def test_engine(database_url):
    """Create test database engine"""
    engine = create_engine(database_url)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return create_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for assertions"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def test_settings(tmp_path, database_url) -> Settings:
    """Settings pointing every path at the test's temporary directory"""
    return Settings(
        DATABASE_URL=database_url,
        IMPORT_FILE_PATH=str(tmp_path / "data" / "person.csv"),
        IMPORT_CHUNK_SIZE=10,
        EXPORT_OUTPUT_PATH=str(tmp_path / "output" / "exported_persons.csv"),
        SCHEDULED_EXPORT_DIR=str(tmp_path / "output"),
        EXPORT_CHUNK_SIZE=10,
        SCHEDULER_ENABLED=False,
        RECONCILE_ON_STARTUP=True,
        ENVIRONMENT="test",
    )


@pytest.fixture
def registry(test_settings, session_factory):
    return build_default_registry(test_settings, session_factory)


@pytest.fixture
def ledger(session_factory) -> RunLedger:
    return RunLedger(session_factory)


@pytest.fixture
def metrics() -> BatchMetrics:
    """Metrics on a private collector registry"""
    return BatchMetrics()


@pytest.fixture
def mock_person_rows():
    """Mock CSV data"""
    return [
        "1,john,doe,j@x.com,30",
        "2,amy,lee,a@x.com,25",
        "3,bo,kim,b@x.com,40",
    ]
