"""Dependency that authenticates a signed request before its body is parsed."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request, status

from app.core.auth import (
    API_KEY_HEADER,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    AuthenticationError,
    RequestAuthenticator,
)
from app.core.errors import build_http_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedRequest:
    """The exact bytes that were signed, plus the accepted timestamp."""

    raw_body: bytes
    timestamp_ms: int


async def require_signed_request(request: Request) -> SignedRequest:
    """FastAPI dependency that rejects any request failing the signed-request checks.

    The rejection reason is logged; the response only says ``Unauthorized``
    (with ``details`` for expired requests).
    """
    raw_body = await request.body()
    authenticator: RequestAuthenticator = request.app.state.services["authenticator"]
    try:
        authenticated = authenticator.authenticate(
            api_key=request.headers.get(API_KEY_HEADER),
            timestamp=request.headers.get(TIMESTAMP_HEADER),
            signature=request.headers.get(SIGNATURE_HEADER),
            raw_body=raw_body,
        )
    except AuthenticationError as exc:
        logger.warning(
            "Rejected signed request",
            extra={
                "reason": exc.error_code,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            },
        )
        raise build_http_error(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Unauthorized",
            details=exc.public_details,
        ) from exc
    return SignedRequest(raw_body=raw_body, timestamp_ms=authenticated.timestamp_ms)
