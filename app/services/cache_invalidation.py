"""Best-effort cache invalidation signals for downstream readers.

Content correctness never depends on these signals: a write that committed
stays committed even if no reader is told about it.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

TOPICS_COLLECTION_TAG = "topics"
TAG_REVISION_KEY_PREFIX = "cache-tag:"
DEFAULT_NOTIFY_TIMEOUT_SECONDS = 2.0


def topic_cache_tag(slug: str) -> str:
    return f"topic:{slug}"


def topic_cache_tags(slug: str) -> list[str]:
    """Tags made stale by an ingest of ``slug``: every listing, then the topic view."""
    return [TOPICS_COLLECTION_TAG, topic_cache_tag(slug)]


class NotificationError(Exception):
    """Raised by a backend when an invalidation signal could not be delivered."""

    def __init__(self, message: str, tag: str) -> None:
        super().__init__(message)
        self.tag = tag
        self.error_code = "cache_notification_failed"


class CacheInvalidator(ABC):
    """Backend that marks cached readers for a tag as stale."""

    @abstractmethod
    async def invalidate(self, tag: str) -> None:
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release backend resources."""


class RedisCacheInvalidator(CacheInvalidator):
    """Bumps a per-tag revision counter and publishes the tag on a channel."""

    def __init__(self, client: Redis, channel: str) -> None:
        self._client = client
        self._channel = channel

    @classmethod
    def from_url(cls, url: str, channel: str) -> RedisCacheInvalidator:
        return cls(Redis.from_url(url), channel)

    async def invalidate(self, tag: str) -> None:
        try:
            async with self._client.pipeline(transaction=False) as pipe:
                pipe.incr(f"{TAG_REVISION_KEY_PREFIX}{tag}")
                pipe.publish(self._channel, tag)
                await pipe.execute()
        except RedisError as exc:
            raise NotificationError(f"Redis invalidation failed: {exc}", tag) from exc

    async def aclose(self) -> None:
        await self._client.aclose()


class NullCacheInvalidator(CacheInvalidator):
    """Used when cache invalidation is disabled; records nothing."""

    async def invalidate(self, tag: str) -> None:
        logger.debug("Cache invalidation disabled, skipping tag", extra={"tag": tag})


@dataclass
class NotificationReport:
    delivered: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class CacheInvalidationNotifier:
    """Fans tags out to the backend; each tag is attempted independently.

    ``notify`` never raises. Failures are logged and reported back.
    """

    def __init__(
        self,
        invalidator: CacheInvalidator,
        timeout_seconds: float = DEFAULT_NOTIFY_TIMEOUT_SECONDS,
    ) -> None:
        self._invalidator = invalidator
        self._timeout_seconds = timeout_seconds

    async def notify(self, tags: Iterable[str]) -> NotificationReport:
        unique_tags = list(dict.fromkeys(tags))
        outcomes = await asyncio.gather(*(self._notify_one(tag) for tag in unique_tags))

        report = NotificationReport()
        for tag, error in zip(unique_tags, outcomes, strict=True):
            if error is None:
                report.delivered.append(tag)
            else:
                report.failed[tag] = error
        return report

    async def _notify_one(self, tag: str) -> str | None:
        try:
            async with asyncio.timeout(self._timeout_seconds):
                await self._invalidator.invalidate(tag)
        except TimeoutError:
            logger.warning("Cache invalidation timed out", extra={"tag": tag})
            return "timed out"
        except Exception as exc:
            logger.warning(
                "Cache invalidation failed", extra={"tag": tag, "error": str(exc)}
            )
            return str(exc) or exc.__class__.__name__
        return None
