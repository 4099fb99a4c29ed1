import os
import uuid

# Settings are read at import time, so the test environment goes first
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CREATE_TABLES", "false")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from dbadmin.core.security import hash_password, open_session
from dbadmin.main import app
from dbadmin.core import models
from dbadmin.core.database import Base, get_db
from dbadmin.core.browser.catalog import MetaDataSchemaProvider, SchemaCatalog
from dbadmin.core.browser.executor import SessionExecutor
from dbadmin.core.browser.lifecycle import RowLifecyclePolicy
from dbadmin.core.browser.operations import TableBrowser


class RecordingExecutor:
    """StatementExecutor that records statements and replays canned results."""

    def __init__(self, results=None):
        self.calls = []
        self.results = list(results or [])

    async def fetch_all(self, statement):
        self.calls.append(statement)
        return self.results.pop(0) if self.results else []

    async def execute(self, statement):
        self.calls.append(statement)
        return self.results.pop(0) if self.results else 0


# Fresh in-memory database for every test
@pytest_asyncio.fixture(scope="function")
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


# Create session and rollback once it is done
@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine):
    TestingSessionLocal = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with TestingSessionLocal() as session:
        yield session
        await session.rollback()
        await session.close()


# Client
@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def recording_executor():
    return RecordingExecutor()


@pytest.fixture
def catalog():
    return SchemaCatalog(MetaDataSchemaProvider(Base.metadata))


# Browser wired to the real test database
@pytest.fixture
def browser(catalog, db_session):
    return TableBrowser(catalog, SessionExecutor(db_session), RowLifecyclePolicy())


async def _create_user(db_session: AsyncSession, prefix: str, role: str):
    # Generate unique email for each test to avoid duplicates
    unique_email = f"{prefix}_{uuid.uuid4().hex[:8]}@gmail.com"
    hashed_pwd = hash_password("password123")  # Make sure to hash the password

    user = models.User(
        name=prefix.title(), email=unique_email, password=hashed_pwd, role=role
    )

    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


# User
@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession):
    return await _create_user(db_session, "test", "user")


# Admin
@pytest_asyncio.fixture(scope="function")
async def test_admin(db_session: AsyncSession):
    return await _create_user(db_session, "admin", "admin")


# Token for user, backed by a real session row
@pytest_asyncio.fixture(scope="function")
async def auth_headers_user(db_session: AsyncSession, test_user):
    token = await open_session(db_session, test_user)
    return {"Authorization": f"Bearer {token}"}


# Token for admin
@pytest_asyncio.fixture(scope="function")
async def auth_headers_admin(db_session: AsyncSession, test_admin):
    token = await open_session(db_session, test_admin)
    return {"Authorization": f"Bearer {token}"}
