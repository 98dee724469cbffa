from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, StringList, TimestampMixin

if TYPE_CHECKING:
    from app.db.models.article import Article
    from app.db.models.faq_item import FAQItem
    from app.db.models.question import Question


class Topic(TimestampMixin, Base):
    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(primary_key=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    title: Mapped[str] = mapped_column(Text)
    locale: Mapped[str] = mapped_column(String(2), index=True)
    tags: Mapped[list[str]] = mapped_column(StringList, default=list)

    seo_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    seo_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    seo_keywords: Mapped[list[str] | None] = mapped_column(StringList, nullable=True)

    questions: Mapped[list[Question]] = relationship(
        back_populates="topic", cascade="all, delete-orphan", passive_deletes=True
    )
    article: Mapped[Article | None] = relationship(
        back_populates="topic", cascade="all, delete-orphan", passive_deletes=True
    )
    faq_items: Mapped[list[FAQItem]] = relationship(
        back_populates="topic",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="FAQItem.order",
    )
