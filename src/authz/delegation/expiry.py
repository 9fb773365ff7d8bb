"""Lazy delegation expiry.

Stale active assignments are moved to ``expired`` just before any decision
that could read them. Each expiry is audited once, by the system actor,
because only the call that performed the UPDATE sees the row returned.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.authz.audit import SYSTEM_ACTOR
from src.shared.types import AuditOutcome, Scope

if TYPE_CHECKING:
    from src.authz.audit import AuditTrail
    from src.ports.delegation_port import DelegationPort
    from src.shared.types import SpaceOwnerAssignment

logger = logging.getLogger(__name__)


async def expire_delegations(
    delegations: DelegationPort,
    audit: AuditTrail | None,
    *,
    server_id: str | None = None,
    user_id: str | None = None,
) -> list[SpaceOwnerAssignment]:
    expired = await delegations.expire_stale(server_id=server_id, user_id=user_id)
    for assignment in expired:
        logger.info(
            "Delegation %s for %s on %s expired",
            assignment.id,
            assignment.assigned_user_id,
            assignment.server_id,
        )
        if audit is not None:
            await audit.record(
                actor_user_id=SYSTEM_ACTOR,
                action="delegation.expire",
                scope=Scope(hub_id=assignment.hub_id, server_id=assignment.server_id),
                outcome=AuditOutcome.GRANTED,
                reason="expired",
                target_user_id=assignment.assigned_user_id,
                metadata={"assignmentId": assignment.id},
            )
    return expired
