"""
Test infrastructure for the Newsroom API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- The app is built with ``create_app`` and handed the test ``Database`` and a
  ``LocalBlobStore`` rooted in pytest's ``tmp_path``, so no global state
  needs patching.
- A fresh database is created before each test and dropped after, giving
  each test a clean isolated state without needing transactions or truncation.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from newsroom.config import Settings
from newsroom.database import Database
from newsroom.main import create_app
from newsroom.storage import LocalBlobStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=TEST_DATABASE_URL,
        SITE_URL="https://news.example.com",
        FRONTEND_URL="https://front.example.com/",
        SITE_NAME="Test News",
        MEDIA_ROOT=str(tmp_path / "media"),
        MEDIA_URL="/media",
        MAX_UPLOAD_SIZE=1024,
    )


@pytest_asyncio.fixture
async def test_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    database = Database(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(database.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    await database.create_all()
    yield database
    # Self-referencing RESTRICT FKs make DROP TABLE fail with rows left behind.
    async with database.engine.connect() as conn:
        await conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
    await database.drop_all()
    await database.dispose()


@pytest.fixture
def blob_store(settings: Settings) -> LocalBlobStore:
    return LocalBlobStore(settings.MEDIA_ROOT, settings.MEDIA_URL)


@pytest.fixture
def app(settings: Settings, test_db: Database, blob_store: LocalBlobStore):
    return create_app(settings, database=test_db, blob_store=blob_store)


@pytest_asyncio.fixture
async def db_session(test_db: Database) -> AsyncSession:
    """
    Yield a live AsyncSession for tests that need to interact with the
    database directly (e.g. seeding data, asserting ORM state).
    """
    async with test_db.session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(app) -> AsyncClient:
    """Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
