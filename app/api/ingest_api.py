"""Signed ingest endpoint."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel

from app.api.dependencies.signed_request import SignedRequest, require_signed_request
from app.api.openapi_responses import INTERNAL_ERROR, error_responses, signed_request_responses
from app.api.schemas.ingest_request_models import IngestPayload
from app.api.schemas.ingest_response_models import IngestResponse
from app.core.errors import build_http_error
from app.core.payload_parser import PayloadValidationError, parse_signed_body
from app.core.rate_limit import INGEST_RATE_LIMIT, limit, rate_limit_api_key_or_ip_key
from app.services.audit_service import AuditContext
from app.services.content_synchronizer import SynchronizationError
from app.services.ingest_pipeline import IngestPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


def signed_body_openapi(model: type[BaseModel]) -> dict[str, Any]:
    """Document the JSON body of an endpoint that reads raw bytes itself."""
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }


def audit_context(request: Request) -> AuditContext:
    return AuditContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def parse_or_400(signed: SignedRequest, model: Any) -> Any:
    try:
        return parse_signed_body(signed.raw_body, model)
    except PayloadValidationError as exc:
        raise build_http_error(
            status_code=status.HTTP_400_BAD_REQUEST,
            error=str(exc),
            details=exc.details,
        ) from exc


@router.post(
    "/ingest",
    summary="Ingest a topic",
    description=(
        "Create or update a topic with its primary question, article and FAQ. "
        "The body must be signed with the shared webhook secret."
    ),
    response_model=IngestResponse,
    responses={**signed_request_responses(), **error_responses(INTERNAL_ERROR)},
    openapi_extra=signed_body_openapi(IngestPayload),
)
@limit(INGEST_RATE_LIMIT, key_func=rate_limit_api_key_or_ip_key)
async def ingest(
    request: Request,
    signed: SignedRequest = Depends(require_signed_request),
) -> IngestResponse:
    """Synchronize one topic and record the attempt as an ingest job."""
    payload: IngestPayload = parse_or_400(signed, IngestPayload)
    pipeline: IngestPipeline = request.app.state.services["ingest_pipeline"]
    try:
        result = await pipeline.ingest(payload, audit=audit_context(request))
    except SynchronizationError as exc:
        logger.error(
            "Ingest failed",
            extra={"topic_slug": payload.topic.slug, "error_code": exc.error_code},
        )
        raise build_http_error(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Internal server error",
        ) from exc
    return IngestResponse(topic_id=result.topic_id, job_id=result.job_id)
