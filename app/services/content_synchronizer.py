"""Content synchronization - idempotent upsert of one topic and its children."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.schemas.ingest_request_models import IngestPayload
from app.db.models.article import Article
from app.db.models.audit_log import AuditAction
from app.db.models.faq_item import FAQItem
from app.db.models.question import Question
from app.db.models.topic import Topic
from app.services.audit_service import AuditContext, AuditSink

DEFAULT_SYNC_TIMEOUT_SECONDS = 10.0

_INSERT_BY_DIALECT: dict[str, Any] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SynchronizationError(Exception):
    """Raised when the content transaction fails; nothing from the call was written."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.error_code = "synchronization_failed"


@dataclass(frozen=True)
class SynchronizedTopic:
    topic_id: int
    question_id: int
    article_id: int
    faq_item_ids: list[int] = field(default_factory=list)
    created: bool = False


class ContentSynchronizer:
    """Applies an ingest payload to the store as a single all-or-nothing transaction.

    Topic, primary question and article keep their row identity across repeated
    ingests of the same slug. FAQ items are fully replaced on every call, so their
    ids change each time.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        audit_sink: AuditSink | None = None,
        timeout_seconds: float = DEFAULT_SYNC_TIMEOUT_SECONDS,
    ) -> None:
        self._session_maker = session_maker
        self._audit_sink = audit_sink
        self._timeout_seconds = timeout_seconds

    async def apply(
        self, payload: IngestPayload, audit: AuditContext | None = None
    ) -> SynchronizedTopic:
        """Upsert topic, primary question and article, then replace the FAQ set.

        Raises:
            SynchronizationError: On any store failure or when the transaction
                exceeds the configured timeout. The message is the store's own
                error text.
        """
        try:
            async with asyncio.timeout(self._timeout_seconds):
                async with self._session_maker() as session, session.begin():
                    synced = await self._apply_in_transaction(session, payload, audit)
        except TimeoutError as exc:
            raise SynchronizationError(
                f"Synchronization of topic '{payload.topic.slug}' timed out "
                f"after {self._timeout_seconds:g}s"
            ) from exc
        except SQLAlchemyError as exc:
            raise SynchronizationError(str(exc)) from exc

        return synced

    async def _apply_in_transaction(
        self, session: AsyncSession, payload: IngestPayload, audit: AuditContext | None
    ) -> SynchronizedTopic:
        # Topic first: every other row references it, and its lock serializes
        # concurrent ingests of the same slug.
        topic, created = await self._upsert_topic(session, payload)
        question = await self._upsert_primary_question(session, topic.id, payload)
        article = await self._upsert_article(session, topic.id, payload)
        faq_items = await self._replace_faq_items(session, topic.id, payload)

        if self._audit_sink is not None and audit is not None:
            await self._audit_sink.record(
                session,
                audit,
                action=AuditAction.CREATE if created else AuditAction.UPDATE,
                entity_type="topic",
                entity_id=str(topic.id),
                details={"slug": topic.slug, "faq_items": len(faq_items)},
            )

        return SynchronizedTopic(
            topic_id=topic.id,
            question_id=question.id,
            article_id=article.id,
            faq_item_ids=[item.id for item in faq_items],
            created=created,
        )

    async def _upsert_topic(
        self, session: AsyncSession, payload: IngestPayload
    ) -> tuple[Topic, bool]:
        data = payload.topic
        values = {
            "slug": data.slug,
            "title": data.title,
            "locale": data.locale,
            "tags": list(data.tags),
            "seo_title": data.seo_title,
            "seo_description": data.seo_description,
            "seo_keywords": data.seo_keywords,
        }
        insert = _INSERT_BY_DIALECT.get(session.bind.dialect.name)
        created = False
        if insert is not None:
            result = await session.execute(
                insert(Topic)
                .values(**values)
                .on_conflict_do_nothing(index_elements=[Topic.slug])
                .returning(Topic.id)
            )
            created = result.scalar_one_or_none() is not None

        result = await session.execute(
            select(Topic).where(Topic.slug == data.slug).with_for_update()
        )
        topic = result.scalar_one_or_none()
        if topic is None:
            topic = Topic(**values)
            session.add(topic)
            await session.flush()
            return topic, True

        for key, value in values.items():
            setattr(topic, key, value)
        await session.flush()
        return topic, created

    async def _upsert_primary_question(
        self, session: AsyncSession, topic_id: int, payload: IngestPayload
    ) -> Question:
        result = await session.execute(
            select(Question)
            .where(Question.topic_id == topic_id, Question.is_primary.is_(True))
            .order_by(Question.id)
            .limit(1)
        )
        question = result.scalar_one_or_none()
        if question is None:
            question = Question(topic_id=topic_id, text=payload.main_question.text, is_primary=True)
            session.add(question)
        else:
            question.text = payload.main_question.text
        await session.flush()
        return question

    async def _upsert_article(
        self, session: AsyncSession, topic_id: int, payload: IngestPayload
    ) -> Article:
        data = payload.article
        result = await session.execute(select(Article).where(Article.topic_id == topic_id))
        article = result.scalar_one_or_none()
        if article is None:
            article = Article(topic_id=topic_id)
            session.add(article)
        article.content = data.content
        article.status = data.status
        article.seo_title = data.seo_title
        article.seo_description = data.seo_description
        article.seo_keywords = data.seo_keywords
        await session.flush()
        return article

    async def _replace_faq_items(
        self, session: AsyncSession, topic_id: int, payload: IngestPayload
    ) -> list[FAQItem]:
        await session.execute(delete(FAQItem).where(FAQItem.topic_id == topic_id))
        items = [
            FAQItem(topic_id=topic_id, question=item.question, answer=item.answer, order=item.order)
            for item in payload.faq_items
        ]
        if items:
            session.add_all(items)
            await session.flush()
        return items
