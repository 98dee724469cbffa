from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import status

from app.core.errors import ErrorResponse


@dataclass(frozen=True)
class ErrorExample:
    status_code: int
    error: str
    description: str
    message: str | None = None
    summary: str | None = None
    details: Any | None = None
    example_name: str | None = None


def error_responses(*examples: ErrorExample) -> dict[int | str, dict[str, Any]]:
    responses: dict[int | str, dict[str, Any]] = {}
    for example in examples:
        response: dict[str, Any] | None = responses.get(example.status_code)
        if response is None:
            examples_payload: dict[str, dict[str, Any]] = {}
            content: dict[str, dict[str, dict[str, Any]]] = {
                "application/json": {"examples": examples_payload}
            }
            response = {
                "model": ErrorResponse,
                "description": example.description,
                "content": content,
            }
            responses[example.status_code] = response
        assert response is not None

        example_name = example.example_name or example.error
        payload: dict[str, Any] = {"error": example.error}
        if example.message is not None:
            payload["message"] = example.message
        if example.details is not None:
            payload["details"] = example.details

        example_entry: dict[str, Any] = {
            "summary": example.summary or example.description,
            "value": payload,
        }
        response_content: dict[str, dict[str, dict[str, Any]]] = response["content"]
        response_content["application/json"]["examples"][example_name] = example_entry

    return responses


RATE_LIMITED = ErrorExample(
    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    error="Too many requests",
    description="Rate limit exceeded",
    example_name="rate_limited",
)

UNAUTHORIZED = ErrorExample(
    status_code=status.HTTP_401_UNAUTHORIZED,
    error="Unauthorized",
    description="Missing or invalid API key, timestamp or signature",
    summary="Unauthorized",
    example_name="unauthorized",
)

REQUEST_EXPIRED = ErrorExample(
    status_code=status.HTTP_401_UNAUTHORIZED,
    error="Unauthorized",
    description="Missing or invalid API key, timestamp or signature",
    summary="Timestamp outside the replay window",
    details="Request expired",
    example_name="request_expired",
)

INVALID_JSON = ErrorExample(
    status_code=status.HTTP_400_BAD_REQUEST,
    error="Invalid JSON",
    description="Body is not valid JSON or fails validation",
    summary="Body is not valid JSON",
    details="Request body must be valid JSON",
    example_name="invalid_json",
)

VALIDATION_FAILED = ErrorExample(
    status_code=status.HTTP_400_BAD_REQUEST,
    error="Validation failed",
    description="Body is not valid JSON or fails validation",
    summary="Body does not match the schema",
    details=[
        {
            "type": "string_too_short",
            "loc": ["topic", "locale"],
            "msg": "String should have at least 2 characters",
        }
    ],
    example_name="validation_failed",
)

INVALID_QUERY = ErrorExample(
    status_code=status.HTTP_400_BAD_REQUEST,
    error="Invalid query parameters",
    description="Query string fails validation",
    details=[
        {
            "type": "less_than_equal",
            "loc": ["query", "limit"],
            "msg": "Input should be less than or equal to 100",
        }
    ],
    example_name="invalid_query",
)

INTERNAL_ERROR = ErrorExample(
    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    error="Internal server error",
    description="Synchronization failed; the ingest job is marked failed",
    example_name="internal_error",
)


def rate_limited_response() -> dict[int | str, dict[str, Any]]:
    return error_responses(RATE_LIMITED)


def signed_request_responses() -> dict[int | str, dict[str, Any]]:
    """401/400/429 documentation shared by the signed endpoints."""
    return error_responses(
        UNAUTHORIZED, REQUEST_EXPIRED, INVALID_JSON, VALIDATION_FAILED, RATE_LIMITED
    )
