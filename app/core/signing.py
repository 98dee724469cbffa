"""HMAC request signing and replay-window checks for signed webhook calls.

A signature is ``hex(HMAC_SHA256(secret, timestamp + "." + raw_body))``. Both
sides must sign the exact bytes that travel on the wire, so verification
always runs on the raw request body and never on a re-serialized value.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from collections.abc import Callable
from datetime import timedelta

DEFAULT_REPLAY_WINDOW = timedelta(minutes=5)

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def _signing_message(timestamp: str, raw_body: bytes) -> bytes:
    return timestamp.encode("ascii") + b"." + raw_body


def compute_signature(secret: str, timestamp: str, raw_body: bytes) -> str:
    """Return the lower-case hex HMAC-SHA256 signature for a request."""
    digest = hmac.new(
        secret.encode("utf-8"), _signing_message(timestamp, raw_body), hashlib.sha256
    )
    return digest.hexdigest()


def constant_time_equals(supplied: str, expected: str) -> bool:
    """Compare two strings without leaking where they differ."""
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def verify_signature(secret: str, timestamp: str, raw_body: bytes, signature: str) -> bool:
    """Check a supplied signature against the one recomputed over ``raw_body``."""
    try:
        expected = compute_signature(secret, timestamp, raw_body)
    except UnicodeEncodeError:
        return False
    return constant_time_equals(signature, expected)


def sign_body(
    secret: str, raw_body: bytes, timestamp_ms: int | None = None
) -> tuple[str, str]:
    """Sign a body for sending. Returns ``(timestamp, signature)`` header values."""
    timestamp = str(now_ms() if timestamp_ms is None else timestamp_ms)
    return timestamp, compute_signature(secret, timestamp, raw_body)


class ReplayGuard:
    """Accepts timestamps within ``window`` of now, in either direction."""

    def __init__(self, window: timedelta = DEFAULT_REPLAY_WINDOW, clock: Clock = now_ms) -> None:
        self._window_ms = int(window.total_seconds() * 1000)
        self._clock = clock

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def skew_ms(self, timestamp_ms: int) -> int:
        return abs(self._clock() - timestamp_ms)

    def is_fresh(self, timestamp_ms: int) -> bool:
        return self.skew_ms(timestamp_ms) <= self._window_ms
