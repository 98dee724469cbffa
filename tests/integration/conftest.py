"""Integration tests always run against a clean database and cache backend."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers import RecordingCacheInvalidator


@pytest.fixture(autouse=True)
def _isolated_state(
    db_session: AsyncSession, cache_invalidator: RecordingCacheInvalidator
) -> None:
    """Pull in row cleanup and a cleared cache backend for every test."""
