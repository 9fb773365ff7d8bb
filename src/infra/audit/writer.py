"""AuditEventWriter - Append-only audit event recording.

Infrastructure layer component implementing AuditLogPort. Writes audit
events to the audit_events table via SQLAlchemy AsyncSession. Enforces:
  - actor and action are non-empty
  - Append-only: no update/delete operations

Usage (authorization code goes through src.authz.audit.AuditTrail):
    writer = AuditEventWriter(session_factory=factory)
    record = await writer.append(entry)

See: migrations/versions/002_authorization.py (audit_events)
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

import sqlalchemy as sa

from src.infra.models import AuditEventModel
from src.ports.audit_log_port import AuditLogPort
from src.shared.errors import ValidationError
from src.shared.types import AuditOutcome, AuditRecord, Scope

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from src.shared.types import AuditEntry


class AuditEventWriter(AuditLogPort):
    """Append-only writer for audit events.

    This class intentionally has NO update/delete methods.
    Audit records are immutable once written.
    """

    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, entry: AuditEntry) -> AuditRecord:
        """Write a single audit event.

        Raises:
            ValidationError: If actor_user_id or action is empty.
        """
        if not entry.actor_user_id:
            raise ValidationError("actor_user_id is required for audit events", field="actor")
        if not entry.action or not entry.action.strip():
            raise ValidationError("action must be non-empty", field="action")

        model = AuditEventModel(
            id=f"aud_{uuid4().hex}",
            actor_user_id=entry.actor_user_id,
            action=entry.action,
            hub_id=entry.scope.hub_id,
            server_id=entry.scope.server_id,
            channel_id=entry.scope.channel_id,
            target_user_id=entry.target_user_id,
            target_message_id=entry.target_message_id,
            outcome=entry.outcome.value,
            reason=entry.reason,
            metadata_=dict(entry.metadata),
            created_at=datetime.now(UTC),
        )
        async with self._session_factory() as session:
            session.add(model)
            await session.commit()
        return _row_to_record(model)

    async def list_events(self, scope: Scope, limit: int = 200) -> list[AuditRecord]:
        stmt = sa.select(AuditEventModel)
        if scope.hub_id is not None:
            stmt = stmt.where(AuditEventModel.hub_id == scope.hub_id)
        if scope.server_id is not None:
            stmt = stmt.where(AuditEventModel.server_id == scope.server_id)
        if scope.channel_id is not None:
            stmt = stmt.where(AuditEventModel.channel_id == scope.channel_id)
        stmt = stmt.order_by(AuditEventModel.created_at.desc()).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
        return [_row_to_record(row) for row in rows]


def _row_to_record(row: AuditEventModel) -> AuditRecord:
    return AuditRecord(
        id=row.id,
        actor_user_id=row.actor_user_id,
        action=row.action,
        scope=Scope(hub_id=row.hub_id, server_id=row.server_id, channel_id=row.channel_id),
        outcome=AuditOutcome(row.outcome),
        created_at=row.created_at,
        reason=row.reason,
        target_user_id=row.target_user_id,
        target_message_id=row.target_message_id,
        metadata=dict(row.metadata_ or {}),
    )
