"""Builders shared by the test modules: signed headers, payloads, a recording cache backend."""

from __future__ import annotations

from typing import Any

from app.core.auth import API_KEY_HEADER, SIGNATURE_HEADER, TIMESTAMP_HEADER
from app.core.signing import sign_body
from app.services.cache_invalidation import CacheInvalidator

TEST_API_KEY = "test-ingest-api-key-0123456789abcdef"
TEST_WEBHOOK_SECRET = "test-webhook-secret-0123456789abcdef"


class RecordingCacheInvalidator(CacheInvalidator):
    """In-memory backend: records delivered tags, or fails every call when told to."""

    def __init__(self) -> None:
        self.tags: list[str] = []
        self.fail_with: Exception | None = None
        self.closed = False

    async def invalidate(self, tag: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.tags.append(tag)

    async def aclose(self) -> None:
        self.closed = True

    def reset(self) -> None:
        self.tags.clear()
        self.fail_with = None


def signed_headers(
    raw_body: bytes,
    *,
    api_key: str = TEST_API_KEY,
    secret: str = TEST_WEBHOOK_SECRET,
    timestamp_ms: int | None = None,
) -> dict[str, str]:
    """Headers for a correctly signed request over ``raw_body``."""
    timestamp, signature = sign_body(secret, raw_body, timestamp_ms)
    return {
        API_KEY_HEADER: api_key,
        TIMESTAMP_HEADER: timestamp,
        SIGNATURE_HEADER: signature,
        "content-type": "application/json",
    }


def build_payload(slug: str = "what-is-hmac", **overrides: Any) -> dict[str, Any]:
    """A valid camelCase ingest payload; top-level sections can be overridden."""
    payload: dict[str, Any] = {
        "topic": {
            "slug": slug,
            "title": "What is HMAC?",
            "locale": "en",
            "tags": ["security", "crypto"],
            "seoTitle": "HMAC explained",
        },
        "mainQuestion": {"text": "What is HMAC and why use it?"},
        "article": {"content": "HMAC combines a hash with a secret key.", "status": "PUBLISHED"},
        "faqItems": [
            {"question": "Is HMAC encryption?", "answer": "No.", "order": 0},
            {"question": "Which hash?", "answer": "SHA-256 here.", "order": 1},
        ],
    }
    payload.update(overrides)
    return payload
