"""Signed on-demand cache revalidation."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from app.api.dependencies.signed_request import SignedRequest, require_signed_request
from app.api.ingest_api import parse_or_400, signed_body_openapi
from app.api.openapi_responses import signed_request_responses
from app.api.schemas.ingest_request_models import RevalidateRequest
from app.api.schemas.ingest_response_models import RevalidateResponse
from app.core.rate_limit import REVALIDATE_RATE_LIMIT, limit, rate_limit_api_key_or_ip_key
from app.services.ingest_pipeline import IngestPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/revalidate",
    summary="Revalidate a cache tag",
    description=(
        "Signal downstream readers that a cache tag is stale. Succeeds even when "
        "the signal could not be delivered."
    ),
    response_model=RevalidateResponse,
    responses=signed_request_responses(),
    openapi_extra=signed_body_openapi(RevalidateRequest),
)
@limit(REVALIDATE_RATE_LIMIT, key_func=rate_limit_api_key_or_ip_key)
async def revalidate(
    request: Request,
    signed: SignedRequest = Depends(require_signed_request),
) -> RevalidateResponse:
    body: RevalidateRequest = parse_or_400(signed, RevalidateRequest)
    pipeline: IngestPipeline = request.app.state.services["ingest_pipeline"]
    report = await pipeline.revalidate(body.tag)
    if not report.ok:
        logger.warning("Revalidation not confirmed", extra={"tag": body.tag})
    return RevalidateResponse(tag=body.tag)
