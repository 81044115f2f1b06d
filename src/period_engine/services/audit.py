"""Audit sink writing AuditEvent rows."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.models import AuditEvent
from period_engine.services.authorization import Actor

logger = logging.getLogger(__name__)


class AuditRecorder:
    """Records who did what to which entity, with before/after state.

    Events are added to the caller's session and commit or roll back with it.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        actor: Actor,
        entity_type: str,
        entity_id: UUID,
        action: str,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
    ) -> AuditEvent:
        event = AuditEvent(
            actor_user_id=actor.user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            before_json=before,
            after_json=after,
        )
        self.session.add(event)
        logger.info(
            "Audit %s on %s %s by user %s (%s)",
            action,
            entity_type,
            entity_id,
            actor.user_id,
            actor.role,
        )
        return event

    async def events_for(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        result = await self.session.execute(
            select(AuditEvent)
            .where(AuditEvent.entity_type == entity_type, AuditEvent.entity_id == entity_id)
            .order_by(AuditEvent.created_at)
        )
        return list(result.scalars())
