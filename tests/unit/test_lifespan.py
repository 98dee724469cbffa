from types import MappingProxyType
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI

from app.core import lifespan as lifespan_module
from app.core.lifespan import close_services, lifespan, verify_database_connection
from tests.helpers import RecordingCacheInvalidator


def _mock_engine() -> MagicMock:
    mock_engine = MagicMock()
    mock_engine.dispose = AsyncMock()
    return mock_engine


def _app_with_services(**services: object) -> FastAPI:
    app = FastAPI()
    app.state.services = MappingProxyType(dict(services))
    return app


@pytest.mark.asyncio
async def test_verify_database_connection_success() -> None:
    """Test that database connection verification succeeds when DB is available."""
    mock_engine = _mock_engine()
    mock_conn = AsyncMock()
    mock_conn.__aenter__ = AsyncMock(return_value=mock_conn)
    mock_conn.__aexit__ = AsyncMock(return_value=None)
    mock_engine.connect.return_value = mock_conn

    with patch("app.core.lifespan.get_engine", return_value=mock_engine):
        await verify_database_connection()

    mock_engine.connect.assert_called_once()
    mock_conn.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_verify_database_connection_failure() -> None:
    """Test that database connection verification raises on failure."""
    mock_engine = _mock_engine()
    mock_engine.connect.side_effect = Exception("Connection failed")
    with patch("app.core.lifespan.get_engine", return_value=mock_engine):
        with pytest.raises(RuntimeError, match="Failed to connect to database"):
            await verify_database_connection()


@pytest.mark.asyncio
async def test_lifespan_skips_db_check_in_test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that lifespan skips database verification in test environment."""
    monkeypatch.setattr(lifespan_module.settings, "environment", "test")
    with (
        patch("app.core.lifespan.verify_database_connection") as mock_verify,
        patch("app.core.lifespan.get_engine", return_value=_mock_engine()),
    ):
        async with lifespan(FastAPI()):
            pass

        mock_verify.assert_not_called()


@pytest.mark.asyncio
async def test_lifespan_verifies_db_in_non_test_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that lifespan verifies database in non-test environments."""
    monkeypatch.setattr(lifespan_module.settings, "environment", "local")
    with (
        patch("app.core.lifespan.verify_database_connection") as mock_verify,
        patch("app.core.lifespan.get_engine", return_value=_mock_engine()),
    ):
        async with lifespan(FastAPI()):
            pass

        mock_verify.assert_called_once()


@pytest.mark.asyncio
async def test_lifespan_shutdown_drains_disposes_and_closes(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Shutdown waits for in-flight ingests, then releases the pool and the cache client."""
    monkeypatch.setattr(lifespan_module.settings, "environment", "test")
    mock_engine = _mock_engine()
    pipeline = MagicMock()
    pipeline.drain = AsyncMock()
    invalidator = RecordingCacheInvalidator()
    app = _app_with_services(ingest_pipeline=pipeline, cache_invalidator=invalidator)

    with patch("app.core.lifespan.get_engine", return_value=mock_engine):
        async with lifespan(app):
            pass

    pipeline.drain.assert_awaited_once()
    mock_engine.dispose.assert_awaited_once()
    assert invalidator.closed is True


@pytest.mark.asyncio
async def test_lifespan_disposes_engine_even_if_startup_fails(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that engine is disposed even if startup verification fails."""
    monkeypatch.setattr(lifespan_module.settings, "environment", "local")
    mock_engine = _mock_engine()
    with (
        patch("app.core.lifespan.get_engine", return_value=mock_engine),
        patch(
            "app.core.lifespan.verify_database_connection",
            side_effect=RuntimeError("DB failed"),
        ),
    ):
        with pytest.raises(RuntimeError):
            async with lifespan(FastAPI()):
                pass

    mock_engine.dispose.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_services_logs_and_continues_on_close_failure() -> None:
    invalidator = MagicMock()
    invalidator.aclose = AsyncMock(side_effect=ConnectionError("gone"))

    await close_services(_app_with_services(cache_invalidator=invalidator))

    invalidator.aclose.assert_awaited_once()
