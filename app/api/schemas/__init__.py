"""API request and response schemas.

Import request/response models from the submodules (e.g. ingest_request_models,
topic_response_models) or from this package for a single entry point.
"""

from __future__ import annotations

from app.api.schemas.ingest_request_models import (
    ArticleInput,
    FAQItemInput,
    IngestPayload,
    MainQuestionInput,
    RevalidateRequest,
    TopicInput,
)
from app.api.schemas.ingest_response_models import IngestResponse, RevalidateResponse
from app.api.schemas.meta_response_models import HealthResponse
from app.api.schemas.topic_request_models import TopicsQuery
from app.api.schemas.topic_response_models import (
    PaginatedTopicsResponse,
    UnifiedTopicResponse,
)

__all__ = [
    "ArticleInput",
    "FAQItemInput",
    "HealthResponse",
    "IngestPayload",
    "IngestResponse",
    "MainQuestionInput",
    "PaginatedTopicsResponse",
    "RevalidateRequest",
    "RevalidateResponse",
    "TopicInput",
    "TopicsQuery",
    "UnifiedTopicResponse",
]
