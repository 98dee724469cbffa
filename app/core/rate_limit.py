from __future__ import annotations

import hashlib
from collections.abc import Callable
from typing import Final, ParamSpec, TypeVar, cast

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.auth import API_KEY_HEADER
from app.core.config import settings
from app.core.signing import constant_time_equals

DEFAULT_RATE_LIMIT: Final[str] = "120/minute"
HEALTH_RATE_LIMIT: Final[str] = "300/minute"
INGEST_RATE_LIMIT: Final[str] = "60/minute"
REVALIDATE_RATE_LIMIT: Final[str] = "60/minute"
TOPICS_READ_RATE_LIMIT: Final[str] = "240/minute"

P = ParamSpec("P")
R = TypeVar("R")
StrOrCallableStr = str | Callable[..., str]
BoolCallable = Callable[..., bool]
ErrorMessageValue = str | Callable[..., str]


def rate_limit_ip_key(request: Request) -> str:
    return f"ip:{get_remote_address(request)}"


def rate_limit_api_key_or_ip_key(request: Request) -> str:
    """Bucket by the configured API key when presented, else by client IP.

    Limits run before authentication, so an unknown key must not earn a fresh
    bucket. Raw keys never reach the limiter storage.
    """
    api_key = request.headers.get(API_KEY_HEADER)
    if api_key and constant_time_equals(api_key, settings.ingest_api_key):
        fingerprint = hashlib.sha256(api_key.encode("utf-8")).hexdigest()
        return f"key:{fingerprint[:16]}"
    return rate_limit_ip_key(request)


limiter = Limiter(
    key_func=rate_limit_ip_key,
    default_limits=[DEFAULT_RATE_LIMIT],
    storage_uri=settings.rate_limit_storage_url,
    in_memory_fallback_enabled=True,
    in_memory_fallback=[DEFAULT_RATE_LIMIT],
)


def limit(
    limit_value: StrOrCallableStr,
    *,
    key_func: Callable[..., str] | None = None,
    per_method: bool = False,
    methods: list[str] | None = None,
    error_message: ErrorMessageValue | None = None,
    exempt_when: BoolCallable | None = None,
    override_defaults: bool = True,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Typed wrapper for SlowAPI's limit decorator."""
    limit_decorator = cast(
        Callable[..., Callable[[Callable[P, R]], Callable[P, R]]],
        limiter.limit,
    )
    return limit_decorator(
        limit_value,
        key_func=key_func,
        per_method=per_method,
        methods=methods,
        error_message=error_message,
        exempt_when=exempt_when,
        override_defaults=override_defaults,
    )
