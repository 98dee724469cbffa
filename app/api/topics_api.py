"""Public read endpoints for ingested topics."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from app.api.dependencies.unit_of_work import UnitOfWork, get_uow
from app.api.openapi_responses import (
    INVALID_QUERY,
    ErrorExample,
    error_responses,
    rate_limited_response,
)
from app.api.schemas.topic_request_models import TopicsQuery
from app.api.schemas.topic_response_models import PaginatedTopicsResponse, UnifiedTopicResponse
from app.core.errors import build_http_error
from app.core.rate_limit import TOPICS_READ_RATE_LIMIT, limit, rate_limit_ip_key

router = APIRouter()


@router.get(
    "",
    summary="List topics",
    description="Topics with a published article, newest first.",
    response_model=PaginatedTopicsResponse,
    responses={**error_responses(INVALID_QUERY), **rate_limited_response()},
)
@limit(TOPICS_READ_RATE_LIMIT, key_func=rate_limit_ip_key)
async def list_topics(
    request: Request,
    query: Annotated[TopicsQuery, Query()],
    uow: UnitOfWork = Depends(get_uow),
) -> PaginatedTopicsResponse:
    page = await uow.topic_query_service.list_topics(
        locale=query.locale, tag=query.tag, page=query.page, limit=query.limit
    )
    return PaginatedTopicsResponse.from_page(page)


@router.get(
    "/{slug}",
    summary="Get a topic",
    description="A topic with its primary question, published article and ordered FAQ.",
    response_model=UnifiedTopicResponse,
    responses={
        **error_responses(
            ErrorExample(
                status_code=status.HTTP_404_NOT_FOUND,
                error="Topic not found",
                description="No topic with this slug",
                example_name="topic_not_found",
            )
        ),
        **rate_limited_response(),
    },
)
@limit(TOPICS_READ_RATE_LIMIT, key_func=rate_limit_ip_key)
async def get_topic(
    request: Request,
    slug: str,
    uow: UnitOfWork = Depends(get_uow),
) -> UnifiedTopicResponse:
    unified = await uow.topic_query_service.get_topic_by_slug(slug)
    if unified is None:
        raise build_http_error(status_code=status.HTTP_404_NOT_FOUND, error="Topic not found")
    return UnifiedTopicResponse.from_unified(unified)
