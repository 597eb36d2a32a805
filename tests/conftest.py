"""
Pytest fixtures for all tests.

Provides:
- In-memory SQLite database per test (aiosqlite)
- FastAPI app and HTTP client bound to the test session
- In-memory replacement for the Redis cache
- Access-context helpers over the in-memory FakeStore
"""

from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tenantcms.core.database import Base, get_db
from tenantcms.main import create_application
from tenantcms.store.sqlalchemy_store import SQLAlchemyStore
from tests.fakes import FakeStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Database

@pytest_asyncio.fixture
async def test_db_engine():
    """
    Fresh in-memory database per test.

    StaticPool keeps the single connection alive, otherwise every new
    connection would see an empty database.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Database session for a test; API requests share it."""
    session_factory = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def sql_store(db_session: AsyncSession) -> SQLAlchemyStore:
    return SQLAlchemyStore(db_session)


# HTTP

@pytest_asyncio.fixture
async def app(db_session: AsyncSession):
    """
    Create FastAPI test application.

    Overrides the database dependency to use the test session.
    """
    application = create_application(use_lifespan=False)

    async def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for API tests.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/api/v1/access")
            assert response.status_code == 200
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Cache

@pytest.fixture(autouse=True)
def mock_cache(monkeypatch):
    """
    Replace Redis with an in-memory dictionary.

    Autouse: no test talks to a real Redis.
    """
    cache_dict: dict[str, Any] = {}

    class MockCacheManager:
        async def get(self, namespace, key):
            return cache_dict.get(f"{namespace}:{key}")

        async def set(self, namespace, key, value, ttl=None):
            cache_dict[f"{namespace}:{key}"] = value
            return True

        async def invalidate_namespace(self, namespace):
            keys_to_delete = [k for k in cache_dict if k.startswith(f"{namespace}:")]
            for key in keys_to_delete:
                del cache_dict[key]
            return len(keys_to_delete)

    manager = MockCacheManager()
    from tenantcms.core import cache
    from tenantcms.features.collections import service

    monkeypatch.setattr(cache, "cache_manager", manager)
    monkeypatch.setattr(service, "cache_manager", manager)
    return cache_dict


# Access contexts over the fake store

@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
