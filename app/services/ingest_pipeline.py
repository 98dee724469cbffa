"""Ingest pipeline - job tracking, synchronization and cache notification in order."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from app.api.schemas.ingest_request_models import IngestPayload
from app.services.audit_service import AuditContext
from app.services.cache_invalidation import (
    CacheInvalidationNotifier,
    NotificationReport,
    topic_cache_tags,
)
from app.services.content_synchronizer import ContentSynchronizer
from app.services.ingest_job_tracker import IngestJobTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    topic_id: int
    job_id: int
    created: bool
    notification: NotificationReport


class IngestPipeline:
    """Runs one authenticated, validated ingest to a terminal job state.

    There is no retry loop here: callers re-submit the same signed payload,
    which is safe because synchronization is idempotent.
    """

    def __init__(
        self,
        job_tracker: IngestJobTracker,
        synchronizer: ContentSynchronizer,
        notifier: CacheInvalidationNotifier,
    ) -> None:
        self._job_tracker = job_tracker
        self._synchronizer = synchronizer
        self._notifier = notifier
        self._in_flight: set[asyncio.Task[IngestResult]] = set()

    async def ingest(
        self, payload: IngestPayload, audit: AuditContext | None = None
    ) -> IngestResult:
        """Synchronize ``payload`` and return the topic and job ids.

        The work runs in its own task and survives cancellation of the caller
        (e.g. a dropped HTTP connection), so the job row always ends up
        completed or failed.

        Raises:
            SynchronizationError: The content transaction failed; the job is failed.
        """
        task = asyncio.create_task(self._run(payload, audit))
        self._in_flight.add(task)
        task.add_done_callback(self._forget)
        return await asyncio.shield(task)

    def _forget(self, task: asyncio.Task[IngestResult]) -> None:
        self._in_flight.discard(task)
        # A cancelled caller never awaits the shielded task; the failure is
        # already on the job row, so only mark it retrieved.
        if not task.cancelled():
            task.exception()

    async def _run(self, payload: IngestPayload, audit: AuditContext | None) -> IngestResult:
        slug = payload.topic.slug
        snapshot = payload.model_dump(mode="json", by_alias=True)

        async with self._job_tracker.track(slug, snapshot) as job:
            synced = await self._synchronizer.apply(payload, audit=audit)

        # Outside the job block: nothing after commit may fail the job.
        logger.info(
            "Topic synchronized",
            extra={
                "job_id": job.id,
                "topic_slug": slug,
                "topic_id": synced.topic_id,
                "topic_created": synced.created,
                "faq_items": len(synced.faq_item_ids),
            },
        )

        report = await self._notifier.notify(topic_cache_tags(slug))
        if not report.ok:
            logger.warning(
                "Topic ingested but cache invalidation incomplete",
                extra={"job_id": job.id, "topic_slug": slug, "failed_tags": list(report.failed)},
            )
        return IngestResult(
            topic_id=synced.topic_id, job_id=job.id, created=synced.created, notification=report
        )

    async def revalidate(self, tag: str) -> NotificationReport:
        """Invalidate a single cache tag on request; never raises."""
        return await self._notifier.notify([tag])

    async def drain(self) -> None:
        """Wait for in-flight ingests, e.g. before shutdown."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
