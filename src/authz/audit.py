"""AuditTrail - the single place authorization code appends audit records.

Wraps AuditLogPort and stamps the current request id into metadata.
Append only: there is no way to change or remove a record from here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.shared.errors import ValidationError
from src.shared.request_context import get_request_id
from src.shared.types import AuditEntry, AuditOutcome

if TYPE_CHECKING:
    from src.ports.audit_log_port import AuditLogPort
    from src.shared.types import AuditRecord, Scope

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


class AuditTrail:
    def __init__(self, log: AuditLogPort) -> None:
        self._log = log

    async def record(
        self,
        *,
        actor_user_id: str,
        action: str,
        scope: Scope,
        outcome: AuditOutcome,
        reason: str | None = None,
        target_user_id: str | None = None,
        target_message_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditRecord:
        """Append one audit record.

        Raises:
            ValidationError: If action or actor is empty.
        """
        if not action or not action.strip():
            raise ValidationError("action must be non-empty", field="action")
        if not actor_user_id:
            raise ValidationError("actor_user_id is required", field="actor_user_id")

        meta = dict(metadata or {})
        request_id = get_request_id()
        if request_id:
            meta.setdefault("requestId", request_id)

        record = await self._log.append(
            AuditEntry(
                actor_user_id=actor_user_id,
                action=action,
                scope=scope,
                outcome=outcome,
                reason=reason,
                target_user_id=target_user_id,
                target_message_id=target_message_id,
                metadata=meta,
            )
        )
        logger.debug(
            "Audit %s actor=%s action=%s outcome=%s",
            record.id,
            actor_user_id,
            action,
            outcome.value,
        )
        return record
