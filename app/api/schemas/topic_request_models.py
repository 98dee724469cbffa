"""Query models for the public topic read endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TopicsQuery(BaseModel):
    locale: str | None = Field(default=None, min_length=2, max_length=2)
    tag: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
