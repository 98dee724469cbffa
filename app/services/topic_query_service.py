"""Read side for ingested topics: single-topic view and filtered listing."""

from __future__ import annotations

import math
from dataclasses import dataclass

from sqlalchemy import ColumnElement, any_, exists, func, literal, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.models.article import Article, ContentStatus
from app.db.models.faq_item import FAQItem
from app.db.models.question import Question
from app.db.models.topic import Topic


@dataclass(frozen=True)
class UnifiedTopic:
    topic: Topic
    primary_question: Question | None
    article: Article | None
    faq_items: list[FAQItem]


@dataclass(frozen=True)
class TopicPage:
    items: list[UnifiedTopic]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _unify(topic: Topic, published_only: bool) -> UnifiedTopic:
    primary = next((q for q in sorted(topic.questions, key=lambda q: q.id) if q.is_primary), None)
    article = topic.article
    if published_only and article is not None and article.status != ContentStatus.PUBLISHED:
        article = None
    return UnifiedTopic(
        topic=topic,
        primary_question=primary,
        article=article,
        faq_items=sorted(topic.faq_items, key=lambda item: item.order),
    )


class TopicQueryService:
    """Session-scoped queries over topics and their children."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def _with_children() -> tuple:
        return (
            selectinload(Topic.questions),
            selectinload(Topic.article),
            selectinload(Topic.faq_items),
        )

    async def get_topic_by_slug(
        self, slug: str, published_only: bool = True
    ) -> UnifiedTopic | None:
        """Return the topic with its primary question, article and ordered FAQ.

        With ``published_only`` a draft article is reported as ``None``.
        """
        result = await self._session.execute(
            select(Topic).where(Topic.slug == slug).options(*self._with_children())
        )
        topic = result.scalar_one_or_none()
        if topic is None:
            return None
        return _unify(topic, published_only)

    def _has_tag(self, tag: str) -> ColumnElement[bool]:
        if self._session.bind.dialect.name == "sqlite":
            elements = func.json_each(Topic.tags).table_valued("value")
            return exists(select(1).select_from(elements).where(elements.c.value == tag))
        return literal(tag) == any_(Topic.tags)

    async def list_topics(
        self,
        *,
        locale: str | None = None,
        tag: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> TopicPage:
        """Topics with a published article, newest first."""
        filters: list[ColumnElement[bool]] = [
            Topic.id.in_(
                select(Article.topic_id).where(Article.status == ContentStatus.PUBLISHED)
            )
        ]
        if locale:
            filters.append(Topic.locale == locale)
        if tag:
            filters.append(self._has_tag(tag))

        total = (
            await self._session.execute(select(func.count(Topic.id)).where(*filters))
        ).scalar_one()
        rows = await self._session.execute(
            select(Topic)
            .where(*filters)
            .order_by(Topic.created_at.desc(), Topic.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .options(*self._with_children())
        )

        return TopicPage(
            items=[_unify(topic, published_only=True) for topic in rows.scalars().all()],
            total=total,
            page=page,
            limit=limit,
        )
