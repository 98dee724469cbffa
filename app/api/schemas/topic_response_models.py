"""Response models for the public topic read endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.db.models.article import ContentStatus
from app.services.topic_query_service import TopicPage, UnifiedTopic


class _ReadModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TopicResponse(_ReadModel):
    id: int
    slug: str
    title: str
    locale: str
    tags: list[str]
    seo_title: str | None = None
    seo_description: str | None = None
    seo_keywords: list[str] | None = None
    created_at: datetime
    updated_at: datetime


class QuestionResponse(_ReadModel):
    id: int
    topic_id: int
    text: str
    is_primary: bool


class ArticleResponse(_ReadModel):
    id: int
    topic_id: int
    content: str
    status: ContentStatus
    seo_title: str | None = None
    seo_description: str | None = None
    seo_keywords: list[str] | None = None
    created_at: datetime
    updated_at: datetime


class FAQItemResponse(_ReadModel):
    id: int
    topic_id: int
    question: str
    answer: str
    order: int


class UnifiedTopicResponse(_ReadModel):
    topic: TopicResponse
    primary_question: QuestionResponse | None
    article: ArticleResponse | None
    faq_items: list[FAQItemResponse]

    @classmethod
    def from_unified(cls, unified: UnifiedTopic) -> UnifiedTopicResponse:
        return cls.model_validate(unified)


class PaginatedTopicsResponse(_ReadModel):
    items: list[UnifiedTopicResponse]
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def from_page(cls, page: TopicPage) -> PaginatedTopicsResponse:
        return cls(
            items=[UnifiedTopicResponse.from_unified(item) for item in page.items],
            total=page.total,
            page=page.page,
            limit=page.limit,
            total_pages=page.total_pages,
        )
