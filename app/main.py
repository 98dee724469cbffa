from __future__ import annotations

import logging
import sys
import types
from importlib.metadata import PackageNotFoundError, version
from typing import Any, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ExceptionHandler

from app.api.router import router as api_router
from app.core.auth import IngestSecurityConfig, RequestAuthenticator
from app.core.config import InvalidSettingsError, MissingRequiredSettingsError, Settings
from app.core.errors import (
    http_exception_handler,
    rate_limit_exception_handler,
    request_validation_exception_handler,
    unhandled_exception_handler,
)
from app.core.lifespan import lifespan
from app.core.logging import configure_logging
from app.core.rate_limit import limiter
from app.db.session import get_session_maker
from app.services.audit_service import AuditSink
from app.services.cache_invalidation import (
    CacheInvalidationNotifier,
    CacheInvalidator,
    NullCacheInvalidator,
    RedisCacheInvalidator,
)
from app.services.content_synchronizer import ContentSynchronizer
from app.services.ingest_job_tracker import IngestJobTracker
from app.services.ingest_pipeline import IngestPipeline
from app.services.topic_query_service import TopicQueryService

# Import settings - this may raise MissingRequiredSettingsError
try:
    from app.core.config import settings
except MissingRequiredSettingsError as e:
    print("ERROR: Missing required environment variables:", file=sys.stderr)
    for field in e.missing_fields:
        print(f"  - {field}", file=sys.stderr)
    print(
        "\nPlease set these in your .env file (see env.example for reference)",
        file=sys.stderr,
    )
    sys.exit(1)
except InvalidSettingsError as e:
    print("ERROR: Invalid environment variable values:", file=sys.stderr)
    for field, message in e.invalid_fields:
        print(f"  - {field}: {message}", file=sys.stderr)
    print(
        "\nPlease update these in your .env file (see env.example for reference)",
        file=sys.stderr,
    )
    sys.exit(1)


def build_cache_invalidator(app_settings: Settings) -> CacheInvalidator:
    if not app_settings.cache_invalidation_enabled or not app_settings.redis_url:
        return NullCacheInvalidator()
    return RedisCacheInvalidator.from_url(
        app_settings.redis_url, app_settings.cache_invalidation_channel
    )


def build_services(
    app_settings: Settings, cache_invalidator: CacheInvalidator | None = None
) -> dict[str, Any]:
    """Wire the service registry stored on ``app.state.services``."""
    session_maker = get_session_maker()
    invalidator = (
        cache_invalidator
        if cache_invalidator is not None
        else build_cache_invalidator(app_settings)
    )
    notifier = CacheInvalidationNotifier(
        invalidator, timeout_seconds=app_settings.cache_notify_timeout_seconds
    )
    pipeline = IngestPipeline(
        job_tracker=IngestJobTracker(session_maker),
        synchronizer=ContentSynchronizer(
            session_maker,
            audit_sink=AuditSink(),
            timeout_seconds=app_settings.sync_timeout_seconds,
        ),
        notifier=notifier,
    )
    return {
        "authenticator": RequestAuthenticator(IngestSecurityConfig.from_settings(app_settings)),
        "cache_invalidator": invalidator,
        "ingest_pipeline": pipeline,
        "topic_query_service": TopicQueryService,
    }


def create_app(cache_invalidator: CacheInvalidator | None = None) -> FastAPI:
    configure_logging()

    try:
        api_version = version("content-ingest-api")
    except PackageNotFoundError:
        api_version = "0.1.0"  # Fallback if package not installed
        logging.warning("content-ingest-api package not found, using fallback version 0.1.0")

    is_debug_mode = settings.environment == "local"
    app = FastAPI(
        title=settings.app_name,
        version=api_version,
        debug=is_debug_mode,
        lifespan=lifespan,
    )
    app.add_exception_handler(
        StarletteHTTPException, cast(ExceptionHandler, http_exception_handler)
    )
    app.add_exception_handler(
        RequestValidationError, cast(ExceptionHandler, request_validation_exception_handler)
    )
    app.add_exception_handler(
        RateLimitExceeded, cast(ExceptionHandler, rate_limit_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, unhandled_exception_handler))
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.include_router(api_router, prefix="/api")

    _services = build_services(settings, cache_invalidator)
    app.state.services = types.MappingProxyType(_services)

    return app


app = create_app()
