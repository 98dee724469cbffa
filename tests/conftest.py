"""Pytest configuration and shared fixtures for unit and integration tests."""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path
from typing import Any, cast

# Settings are validated at import time, so test defaults go in before any app import.
_sqlite_dir = Path(tempfile.mkdtemp(prefix="content-ingest-tests-"))
test_database_url = os.getenv("TEST_DATABASE_URL") or (
    f"sqlite+aiosqlite:///{_sqlite_dir / 'test.db'}"
)

for _name, _value in {
    "POSTGRES_USER": "user",
    "POSTGRES_PASSWORD": "pass",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "content",
    "REDIS_HOST": "localhost",
    "REDIS_PORT": "6379",
    "REDIS_DB": "0",
    "INGEST_API_KEY": "test-ingest-api-key-0123456789abcdef",
    "INGEST_WEBHOOK_SECRET": "test-webhook-secret-0123456789abcdef",
    "ENVIRONMENT": "test",
    "DATABASE_URL": test_database_url,
    "RATE_LIMIT_STORAGE_URL": "memory://",
    "CACHE_INVALIDATION_ENABLED": "false",
}.items():
    os.environ.setdefault(_name, _value)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from httpx import ASGITransport, AsyncClient, Response  # noqa: E402
from sqlalchemy import text  # noqa: E402
from sqlalchemy.engine.url import make_url  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.client.ingest_client import encode_body  # noqa: E402
from app.core import config  # noqa: E402
from app.core.rate_limit import limiter  # noqa: E402
from app.db import models  # noqa: E402, F401
from app.db.base import Base  # noqa: E402
from app.db.session import build_engine, build_session_maker  # noqa: E402
from app.main import create_app  # noqa: E402
from tests.helpers import (  # noqa: E402
    TEST_API_KEY,
    TEST_WEBHOOK_SECRET,
    RecordingCacheInvalidator,
    signed_headers,
)


def _use_test_settings() -> None:
    config.settings.environment = "test"
    config.settings.database_url = test_database_url
    config.settings.ingest_api_key = TEST_API_KEY
    config.settings.ingest_webhook_secret = TEST_WEBHOOK_SECRET


# Database fixtures (session-scoped engine, function-scoped cleanup).


@pytest_asyncio.fixture(scope="session")
async def ensure_test_database() -> None:
    """Create the PostgreSQL test database when missing; SQLite files need nothing."""
    url = make_url(test_database_url)
    if url.get_backend_name() != "postgresql":
        return

    admin_engine = create_async_engine(
        url.set(database="postgres"), pool_pre_ping=True, isolation_level="AUTOCOMMIT"
    )
    try:
        async with admin_engine.connect() as conn:
            result = await conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :db_name"),
                {"db_name": url.database},
            )
            if result.scalar() is None:
                await conn.execute(text(f'CREATE DATABASE "{url.database}"'))
    finally:
        # Use sync dispose to avoid event loop issues
        admin_engine.sync_engine.dispose()


@pytest_asyncio.fixture(scope="session")
async def test_engine(ensure_test_database: None) -> AsyncIterator[AsyncEngine]:
    """Creates a test database engine (reused across all tests)."""
    engine = build_engine(test_database_url)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="session")
async def setup_test_db(test_engine: AsyncEngine) -> AsyncIterator[None]:
    """Creates test database tables."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="session")
async def test_session_maker(
    setup_test_db: None, test_engine: AsyncEngine
) -> async_sessionmaker[AsyncSession]:
    """Creates a session maker (reused across all tests)."""
    return build_session_maker(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(
    test_session_maker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Creates a database session for a test (function-scoped).

    Every row is deleted after the test so data never leaks between tests.
    """
    async with test_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            for table in reversed(Base.metadata.sorted_tables):
                await session.execute(table.delete())
            await session.commit()


# App fixtures.


@pytest.fixture(scope="session")
def recording_invalidator() -> RecordingCacheInvalidator:
    return RecordingCacheInvalidator()


@pytest.fixture(scope="function")
def cache_invalidator(
    recording_invalidator: RecordingCacheInvalidator,
) -> RecordingCacheInvalidator:
    """The cache backend wired into ``async_app``, cleared for this test."""
    recording_invalidator.reset()
    return recording_invalidator


@pytest.fixture(autouse=True)
def reset_rate_limits() -> None:
    limiter.reset()


@pytest_asyncio.fixture(scope="session")
async def async_app(
    test_session_maker: async_sessionmaker[AsyncSession],
    recording_invalidator: RecordingCacheInvalidator,
) -> AsyncIterator[FastAPI]:
    """FastAPI app for async tests, wired to the test database (session-scoped).

    Shares the session event loop with pytest-asyncio, so the app's engine and
    the test engine never cross loops.
    """
    _use_test_settings()
    fastapi_app = create_app(cache_invalidator=recording_invalidator)
    yield fastapi_app
    await fastapi_app.state.services["ingest_pipeline"].drain()


@pytest_asyncio.fixture(scope="function")
async def async_http_client(async_app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Creates an async http client."""
    transport = ASGITransport(app=async_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


SignedPost = Callable[..., Awaitable[Response]]


@pytest.fixture
def signed_post(async_http_client: AsyncClient) -> SignedPost:
    """POST a body signed with the test credentials; keyword overrides go to ``signed_headers``."""

    async def post(path: str, body: Any, **header_overrides: Any) -> Response:
        raw_body = body if isinstance(body, bytes) else encode_body(body)
        headers = signed_headers(raw_body, **header_overrides)
        return await async_http_client.post(path, content=raw_body, headers=headers)

    return cast(SignedPost, post)


# Synchronous fixtures (function-scoped, for tests that don't need database access)


@pytest.fixture(scope="function")
def app() -> FastAPI:
    """Creates a FastAPI app for synchronous tests (function-scoped)."""
    _use_test_settings()
    return create_app()


@pytest.fixture(scope="function")
def http_client(app: FastAPI) -> TestClient:
    """Creates a synchronous http client (lifespan is not run)."""
    return TestClient(app)
