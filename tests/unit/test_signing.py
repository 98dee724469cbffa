"""Unit tests for HMAC signing and the replay window in app/core/signing.py."""

from __future__ import annotations

import hashlib
import hmac
from datetime import timedelta

import pytest

from app.core.signing import (
    ReplayGuard,
    compute_signature,
    constant_time_equals,
    sign_body,
    verify_signature,
)

SECRET = "unit-test-webhook-secret-0123456789"
NOW_MS = 1_700_000_000_000
MINUTE_MS = 60_000


class TestSignature:
    """Signature construction and verification."""

    def test_signature_is_hmac_sha256_over_timestamp_dot_body(self) -> None:
        body = b'{"tag":"topics"}'
        expected = hmac.new(
            SECRET.encode(), b"1700000000000." + body, hashlib.sha256
        ).hexdigest()

        assert compute_signature(SECRET, "1700000000000", body) == expected

    def test_signature_is_lower_case_hex(self) -> None:
        signature = compute_signature(SECRET, "1", b"{}")
        assert len(signature) == 64
        assert signature == signature.lower()
        int(signature, 16)

    def test_verify_accepts_matching_signature(self) -> None:
        timestamp, signature = sign_body(SECRET, b'{"a":1}', NOW_MS)
        assert timestamp == str(NOW_MS)
        assert verify_signature(SECRET, timestamp, b'{"a":1}', signature) is True

    def test_verify_rejects_single_byte_change_in_body(self) -> None:
        timestamp, signature = sign_body(SECRET, b'{"a":1}', NOW_MS)
        assert verify_signature(SECRET, timestamp, b'{"a":2}', signature) is False

    def test_verify_rejects_changed_timestamp(self) -> None:
        timestamp, signature = sign_body(SECRET, b'{"a":1}', NOW_MS)
        assert verify_signature(SECRET, str(NOW_MS + 1), b'{"a":1}', signature) is False

    def test_verify_rejects_wrong_secret(self) -> None:
        timestamp, signature = sign_body("another-secret", b"{}", NOW_MS)
        assert verify_signature(SECRET, timestamp, b"{}", signature) is False

    def test_whitespace_differences_break_the_signature(self) -> None:
        """The exact bytes are signed, so re-serialized JSON does not verify."""
        timestamp, signature = sign_body(SECRET, b'{"a": 1}', NOW_MS)
        assert verify_signature(SECRET, timestamp, b'{"a":1}', signature) is False

    def test_verify_rejects_upper_case_signature(self) -> None:
        timestamp, signature = sign_body(SECRET, b"{}", NOW_MS)
        assert verify_signature(SECRET, timestamp, b"{}", signature.upper()) is False

    def test_verify_rejects_non_ascii_timestamp(self) -> None:
        assert verify_signature(SECRET, "١٢٣", b"{}", "00") is False

    def test_constant_time_equals(self) -> None:
        assert constant_time_equals("abc", "abc") is True
        assert constant_time_equals("abc", "abd") is False
        assert constant_time_equals("abc", "abcd") is False


class TestReplayGuard:
    """Replay window boundaries, in both directions."""

    @pytest.fixture
    def guard(self) -> ReplayGuard:
        return ReplayGuard(timedelta(minutes=5), clock=lambda: NOW_MS)

    @pytest.mark.parametrize("offset_minutes", [-4, 0, 4])
    def test_accepts_within_window(self, guard: ReplayGuard, offset_minutes: int) -> None:
        assert guard.is_fresh(NOW_MS + offset_minutes * MINUTE_MS) is True

    @pytest.mark.parametrize("offset_minutes", [-6, 6])
    def test_rejects_outside_window(self, guard: ReplayGuard, offset_minutes: int) -> None:
        assert guard.is_fresh(NOW_MS + offset_minutes * MINUTE_MS) is False

    def test_exact_window_boundary_is_accepted(self, guard: ReplayGuard) -> None:
        assert guard.is_fresh(NOW_MS - 5 * MINUTE_MS) is True
        assert guard.is_fresh(NOW_MS - 5 * MINUTE_MS - 1) is False

    def test_window_and_skew(self, guard: ReplayGuard) -> None:
        assert guard.window_ms == 5 * MINUTE_MS
        assert guard.skew_ms(NOW_MS + 1234) == 1234
        assert guard.skew_ms(NOW_MS - 1234) == 1234
