import os
from collections.abc import AsyncGenerator
from unittest.mock import MagicMock
from uuid import uuid4

# Settings are read at import time; tests must never need a real .env
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./osteocenter_test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

load_dotenv()

from app.core.redis_client import get_redis_client
from app.core.security import create_access_token, user_claims
from app.database import enable_sqlite_foreign_keys, get_db, to_async_url
from app.main import app
from app.models import metadata, users

# Defaults to a throwaway SQLite file; point TEST_DATABASE_URL at a scratch
# Postgres database to run the suite against the production dialect.
TEST_DATABASE_URL = to_async_url(
    os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///./osteocenter_test.db")
)

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)
enable_sqlite_foreign_keys(test_engine)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh schema per test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def mock_redis() -> MagicMock:
    """Redis double: every key is a miss and nothing is blacklisted."""
    redis_client = MagicMock()
    redis_client.get.return_value = None
    redis_client.exists.return_value = 0
    redis_client.incr.return_value = 1
    return redis_client


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, mock_redis: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = lambda: mock_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def create_user(db_session: AsyncSession, **values) -> dict:
    """Insert a user row and return it."""
    suffix = uuid4().hex[:8]
    row = {
        "email": f"user-{suffix}@example.com",
        "username": f"user-{suffix}",
        "name": "Test User",
        "role": "USER",
        **values,
    }
    result = await db_session.execute(insert(users).values(**row).returning(*users.c))
    user = dict(result.mappings().one())
    await db_session.commit()
    return user


def headers_for(user: dict) -> dict:
    """Bearer header for a user row."""
    token = create_access_token(data=user_claims(user))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> dict:
    """A patient who has not finished onboarding."""
    return await create_user(
        db_session,
        email="patient@example.com",
        username="patient",
        name="Paciente Prueba",
    )


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> dict:
    """A doctor (ADMIN role)."""
    return await create_user(
        db_session,
        email="doctor@example.com",
        username="doctor",
        name="Doctora Prueba",
        role="ADMIN",
    )


@pytest.fixture
def user_factory(db_session: AsyncSession):
    """Create extra users: ``await user_factory(role="ADMIN", ...)``."""

    async def factory(**values) -> dict:
        return await create_user(db_session, **values)

    return factory


@pytest.fixture
def auth_headers(test_user: dict) -> dict:
    return headers_for(test_user)


@pytest.fixture
def admin_headers(admin_user: dict) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def token_headers():
    """``token_headers(user)`` builds a bearer header for any user row."""
    return headers_for
