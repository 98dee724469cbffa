from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta

from app.core.config import Settings
from app.core.signing import (
    DEFAULT_REPLAY_WINDOW,
    Clock,
    ReplayGuard,
    constant_time_equals,
    now_ms,
    verify_signature,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"
TIMESTAMP_HEADER = "x-timestamp"
SIGNATURE_HEADER = "x-signature"

_TIMESTAMP_PATTERN = re.compile(r"\d{1,16}")


class AuthenticationError(Exception):
    """Base error for rejected signed requests.

    ``public_details`` is the only part of the failure that may reach the wire.
    """

    public_details: str | None = None

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message)
        self.error_code = error_code


class MissingCredentialsError(AuthenticationError):
    def __init__(self, message: str = "Missing required security headers") -> None:
        super().__init__(message, "missing_credentials")


class InvalidApiKeyError(AuthenticationError):
    def __init__(self, message: str = "Invalid API key") -> None:
        super().__init__(message, "invalid_api_key")


class InvalidTimestampError(AuthenticationError):
    def __init__(self, message: str = "Invalid timestamp format") -> None:
        super().__init__(message, "invalid_timestamp")


class RequestExpiredError(AuthenticationError):
    public_details = "Request expired"

    def __init__(self, message: str = "Request expired") -> None:
        super().__init__(message, "request_expired")


class InvalidSignatureError(AuthenticationError):
    def __init__(self, message: str = "Invalid signature") -> None:
        super().__init__(message, "invalid_signature")


@dataclass(frozen=True)
class IngestSecurityConfig:
    """Immutable credentials for signed ingest requests, loaded once at start-up."""

    api_key: str = field(repr=False)
    webhook_secret: str = field(repr=False)
    replay_window: timedelta = DEFAULT_REPLAY_WINDOW

    @classmethod
    def from_settings(cls, settings: Settings) -> IngestSecurityConfig:
        return cls(
            api_key=settings.ingest_api_key,
            webhook_secret=settings.ingest_webhook_secret,
            replay_window=timedelta(seconds=settings.replay_window_seconds),
        )


@dataclass(frozen=True)
class Authenticated:
    timestamp_ms: int


class RequestAuthenticator:
    """Accepts or rejects a signed request from its headers and raw body bytes."""

    def __init__(self, config: IngestSecurityConfig, clock: Clock = now_ms) -> None:
        self._config = config
        self._replay_guard = ReplayGuard(config.replay_window, clock)

    def authenticate(
        self,
        api_key: str | None,
        timestamp: str | None,
        signature: str | None,
        raw_body: bytes,
    ) -> Authenticated:
        """Run every check in order; the first failure raises.

        Raises:
            MissingCredentialsError: A security header is absent or empty
            InvalidApiKeyError: The API key does not match
            InvalidTimestampError: The timestamp is not a decimal millisecond value
            RequestExpiredError: The timestamp is outside the replay window
            InvalidSignatureError: The HMAC does not match the raw body
        """
        if not api_key or not timestamp or not signature:
            raise MissingCredentialsError()

        if not constant_time_equals(api_key, self._config.api_key):
            raise InvalidApiKeyError()

        if not _TIMESTAMP_PATTERN.fullmatch(timestamp):
            raise InvalidTimestampError()
        timestamp_ms = int(timestamp)

        if not self._replay_guard.is_fresh(timestamp_ms):
            logger.info(
                "Signed request outside replay window",
                extra={"skew_ms": self._replay_guard.skew_ms(timestamp_ms)},
            )
            raise RequestExpiredError()

        if not verify_signature(self._config.webhook_secret, timestamp, raw_body, signature):
            raise InvalidSignatureError()

        return Authenticated(timestamp_ms=timestamp_ms)
