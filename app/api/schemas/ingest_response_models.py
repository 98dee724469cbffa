"""Response models for the signed ingest and revalidate endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class IngestResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    topic_id: int
    job_id: int


class RevalidateResponse(BaseModel):
    message: str = "Revalidated successfully"
    tag: str
