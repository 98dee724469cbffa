"""Ingest job tracking - a durable record of every synchronization attempt."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.ingest_job import IngestJob, IngestJobStatus

logger = logging.getLogger(__name__)


class IngestJobStateError(Exception):
    """Raised when a terminal transition targets a job that is no longer processing."""

    def __init__(self, job_id: int) -> None:
        super().__init__(f"Ingest job {job_id} is not in processing state")
        self.job_id = job_id
        self.error_code = "job_already_closed"


@dataclass(frozen=True)
class JobHandle:
    id: int
    topic_slug: str


def describe_failure(exc: BaseException) -> str:
    """Error text stored on a failed job; never empty."""
    message = str(exc)
    return message if message else exc.__class__.__name__


class IngestJobTracker:
    """Opens and closes ingest job rows, each write in its own committed transaction.

    The processing row is committed before any content mutation starts, so a
    crash mid-synchronization still leaves forensic evidence behind.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def start(self, topic_slug: str, payload_snapshot: dict[str, Any]) -> JobHandle:
        async with self._session_maker() as session, session.begin():
            result = await session.execute(
                insert(IngestJob)
                .values(
                    topic_slug=topic_slug,
                    status=IngestJobStatus.PROCESSING.value,
                    payload=payload_snapshot,
                )
                .returning(IngestJob.id)
            )
            job_id = result.scalar_one()
        logger.info("Ingest job started", extra={"job_id": job_id, "topic_slug": topic_slug})
        return JobHandle(id=job_id, topic_slug=topic_slug)

    async def finish_success(self, handle: JobHandle) -> None:
        await self._close(handle, IngestJobStatus.COMPLETED, error=None)
        logger.info("Ingest job completed", extra={"job_id": handle.id})

    async def finish_failure(self, handle: JobHandle, error_message: str) -> None:
        await self._close(handle, IngestJobStatus.FAILED, error=error_message)
        logger.warning(
            "Ingest job failed",
            extra={"job_id": handle.id, "topic_slug": handle.topic_slug, "error": error_message},
        )

    async def _close(
        self, handle: JobHandle, status: IngestJobStatus, error: str | None
    ) -> None:
        async with self._session_maker() as session, session.begin():
            result = await session.execute(
                update(IngestJob)
                .where(
                    IngestJob.id == handle.id,
                    IngestJob.status == IngestJobStatus.PROCESSING.value,
                )
                .values(status=status.value, error=error, completed_at=datetime.now(UTC))
            )
            if result.rowcount != 1:
                raise IngestJobStateError(handle.id)

    @asynccontextmanager
    async def track(
        self, topic_slug: str, payload_snapshot: dict[str, Any]
    ) -> AsyncIterator[JobHandle]:
        """Start a job and close it exactly once, whatever happens in the block."""
        handle = await self.start(topic_slug, payload_snapshot)
        try:
            yield handle
        except BaseException as exc:
            await self.finish_failure(handle, describe_failure(exc))
            raise
        await self.finish_success(handle)

    async def get(self, job_id: int) -> IngestJob | None:
        async with self._session_maker() as session:
            result = await session.execute(select(IngestJob).where(IngestJob.id == job_id))
            return result.scalar_one_or_none()
