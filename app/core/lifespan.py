from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text

from app.core.config import settings
from app.db.session import get_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """FastAPI lifespan context manager for startup/shutdown events."""
    try:
        # Startup
        if settings.environment != "test":
            await verify_database_connection()
        yield

        # Shutdown
    finally:
        await drain_ingests(app)
        await get_engine().dispose()
        await close_services(app)


async def verify_database_connection() -> None:
    """Verify database connectivity at startup. Raises if connection fails."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        raise RuntimeError(f"Failed to connect to database: {e}") from e


async def drain_ingests(app: FastAPI) -> None:
    """Let shielded ingests reach a terminal job state before the pool goes away."""
    services = getattr(app.state, "services", None)
    if not services:
        return
    pipeline = services.get("ingest_pipeline")
    if pipeline is not None:
        await pipeline.drain()


async def close_services(app: FastAPI) -> None:
    """Release clients held by the service registry."""
    services = getattr(app.state, "services", None)
    if not services:
        return
    invalidator = services.get("cache_invalidator")
    if invalidator is not None:
        try:
            await invalidator.aclose()
        except Exception:
            logger.exception("Failed to close cache invalidation client")
