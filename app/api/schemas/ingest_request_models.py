"""Request models for the signed ingest and revalidate endpoints.

Wire format is camelCase JSON; attributes are snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.db.models.article import ContentStatus


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SeoFields(_CamelModel):
    seo_title: str | None = None
    seo_description: str | None = None
    seo_keywords: list[str] | None = None


class TopicInput(SeoFields):
    slug: str = Field(..., min_length=1, max_length=255, description="Natural key of the topic")
    title: str = Field(..., min_length=1)
    locale: str = Field(..., min_length=2, max_length=2, description="Two-letter locale, e.g. en")
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def unique_tags(cls, value: list[str]) -> list[str]:
        """Tags are a set; keep first occurrence order for stable storage."""
        return list(dict.fromkeys(value))


class MainQuestionInput(_CamelModel):
    text: str = Field(..., min_length=1)


class ArticleInput(SeoFields):
    content: str = Field(..., min_length=1)
    status: ContentStatus


class FAQItemInput(_CamelModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    order: int = Field(..., ge=0, description="Caller-assigned display position")


class IngestPayload(_CamelModel):
    """Complete desired state of one topic; ``topic.slug`` identifies it."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "topic": {
                        "slug": "intro-to-x",
                        "title": "Intro",
                        "locale": "en",
                        "tags": ["basics"],
                    },
                    "mainQuestion": {"text": "What is X?"},
                    "article": {"content": "<p>X is ...</p>", "status": "PUBLISHED"},
                    "faqItems": [{"question": "Why X?", "answer": "Because.", "order": 0}],
                }
            ]
        },
    )

    topic: TopicInput
    main_question: MainQuestionInput
    article: ArticleInput
    faq_items: list[FAQItemInput] = Field(default_factory=list)


class RevalidateRequest(_CamelModel):
    tag: str = Field(..., min_length=1, examples=["topics", "topic:intro-to-x"])
