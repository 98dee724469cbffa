"""HTTP client for the signed ingest API (used by content producers and tests)."""

from __future__ import annotations

import json
import logging
from types import TracebackType
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from app.api.schemas.ingest_request_models import IngestPayload
from app.api.schemas.ingest_response_models import IngestResponse, RevalidateResponse
from app.core.auth import API_KEY_HEADER, SIGNATURE_HEADER, TIMESTAMP_HEADER
from app.core.signing import sign_body
from app.services.cache_invalidation import topic_cache_tag

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


class IngestClientError(Exception):
    """Base error raised when the ingest API cannot fulfill a request."""

    def __init__(self, message: str, error_code: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code


class IngestUnavailableError(IngestClientError):
    """API unreachable, timed out or rate limited; safe to retry the same payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, "ingest_unavailable", status_code)


class IngestRejectedError(IngestClientError):
    """Credentials, timestamp or signature were rejected."""

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message, "ingest_rejected", 401)
        self.details = details


class IngestInvalidPayloadError(IngestClientError):
    """The body was not valid JSON or failed validation."""

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message, "ingest_invalid_payload", 400)
        self.details = details


class IngestServerError(IngestClientError):
    """The server accepted the request but synchronization failed."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message, "ingest_server_error", status_code)


def encode_body(body: BaseModel | dict[str, Any]) -> bytes:
    """Serialize once; these exact bytes are both signed and sent."""
    if isinstance(body, BaseModel):
        return body.model_dump_json(by_alias=True).encode("utf-8")
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class IngestClient:
    """Signs and sends ingest and revalidate requests.

    Pass ``transport`` (e.g. ``httpx.ASGITransport``) to talk to an app in-process.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        webhook_secret: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> IngestClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def ingest(self, payload: IngestPayload | dict[str, Any]) -> IngestResponse:
        data = await self._post_signed("/api/ingest", encode_body(payload))
        return self._parse(data, IngestResponse)

    async def revalidate(self, tag: str) -> RevalidateResponse:
        data = await self._post_signed("/api/revalidate", encode_body({"tag": tag}))
        return self._parse(data, RevalidateResponse)

    async def revalidate_topic_cache(self, slug: str) -> RevalidateResponse:
        return await self.revalidate(topic_cache_tag(slug))

    def signed_headers(self, raw_body: bytes) -> dict[str, str]:
        timestamp, signature = sign_body(self._webhook_secret, raw_body)
        return {
            API_KEY_HEADER: self._api_key,
            TIMESTAMP_HEADER: timestamp,
            SIGNATURE_HEADER: signature,
            "content-type": "application/json",
        }

    async def _post_signed(self, path: str, raw_body: bytes) -> Any:
        try:
            response = await self._client.post(
                path, content=raw_body, headers=self.signed_headers(raw_body)
            )
        except httpx.TimeoutException as exc:
            logger.error("Ingest API request timed out", extra={"path": path})
            raise IngestUnavailableError("Ingest API request timed out.") from exc
        except httpx.TransportError as exc:
            logger.error("Ingest API unreachable", extra={"path": path, "error": str(exc)})
            raise IngestUnavailableError("Ingest API unreachable.") from exc

        if response.is_success:
            try:
                return response.json()
            except json.JSONDecodeError as exc:
                raise IngestServerError(
                    "Ingest API returned invalid JSON.", response.status_code
                ) from exc
        raise self._error_for(response)

    @staticmethod
    def _error_for(response: httpx.Response) -> IngestClientError:
        try:
            body = response.json()
        except json.JSONDecodeError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        error = str(body.get("error") or response.reason_phrase)
        details = body.get("details")

        if response.status_code == 401:
            return IngestRejectedError(error, details)
        if response.status_code == 400:
            return IngestInvalidPayloadError(error, details)
        if response.status_code == 429 or response.status_code >= 502:
            return IngestUnavailableError(error, response.status_code)
        return IngestServerError(error, response.status_code)

    @staticmethod
    def _parse(data: Any, model: type[Any]) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise IngestServerError(
                "Ingest API response did not match expected format.", 200
            ) from exc
