"""Audit trail for content changes made through the ingest API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.audit_log import AuditAction, AuditLog

INGEST_ACTOR = "ingest-api"
_MAX_USER_AGENT_LENGTH = 512


@dataclass(frozen=True)
class AuditContext:
    """Who is acting, and from where."""

    actor: str = INGEST_ACTOR
    ip_address: str | None = None
    user_agent: str | None = None


class AuditSink:
    """Writes audit rows inside the caller's transaction."""

    async def record(
        self,
        session: AsyncSession,
        context: AuditContext,
        *,
        action: AuditAction,
        entity_type: str,
        entity_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        user_agent = context.user_agent
        if user_agent is not None:
            user_agent = user_agent[:_MAX_USER_AGENT_LENGTH]
        entry = AuditLog(
            actor=context.actor,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            ip_address=context.ip_address,
            user_agent=user_agent,
        )
        session.add(entry)
        await session.flush()
        return entry
