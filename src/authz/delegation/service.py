"""DelegationService - space-owner delegation and ownership transfer.

Authority:
  - assign / revoke: passes the role-grant authorizer for space_owner at the
    server (i.e. hub_admin), or the actor is the server's actual owner.
    Delegated owners cannot re-delegate.
  - transfer_ownership: hub_admin over the server, or the current owner.
  - list: any manager of the server (hub_admin, owner, delegated owner).

Every assign/revoke/transfer attempt that reaches an authorization
decision writes exactly one audit record, including attempts that lose a
race to a concurrent revoke or transfer.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from src.authz.delegation.expiry import expire_delegations
from src.authz.roles.grant import FORBIDDEN_SCOPE, NOT_FOUND
from src.authz.scope.matcher import scope_matches
from src.infra.auth.rbac import HUB_MANAGER_ROLES, SERVER_MANAGER_ROLES, Role
from src.shared.errors import (
    ForbiddenScopeError,
    NotFoundError,
    RoleEscalationDeniedError,
    ValidationError,
)
from src.shared.types import AuditOutcome, Scope

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.authz.audit import AuditTrail
    from src.authz.roles.evaluator import EffectiveRoleEvaluator
    from src.authz.roles.grant import RoleGrantAuthorizer
    from src.ports.delegation_port import DelegationPort
    from src.ports.scope_directory_port import ScopeDirectoryPort
    from src.shared.types import ServerRecord, SpaceOwnerAssignment

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DelegationService:
    def __init__(
        self,
        *,
        delegations: DelegationPort,
        directory: ScopeDirectoryPort,
        authorizer: RoleGrantAuthorizer,
        evaluator: EffectiveRoleEvaluator,
        audit: AuditTrail,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._delegations = delegations
        self._directory = directory
        self._authorizer = authorizer
        self._evaluator = evaluator
        self._audit = audit
        self._clock = clock

    async def assign(
        self,
        actor_user_id: str,
        server_id: str,
        assigned_user_id: str,
        expires_at: datetime | None = None,
    ) -> SpaceOwnerAssignment:
        """Delegate space_owner on server_id to assigned_user_id.

        Re-assigning an existing (revoked/expired) pair reactivates the row.

        Raises:
            NotFoundError: Server does not exist.
            ValidationError: expires_at is not in the future.
            ForbiddenScopeError / RoleEscalationDeniedError: Actor lacks authority.
        """
        server = await self._require_server(server_id)
        scope = Scope(hub_id=server.hub_id, server_id=server.id)

        if expires_at is not None:
            if expires_at.tzinfo is None:
                raise ValidationError("expires_at must be timezone-aware", field="expires_at")
            if expires_at <= self._clock():
                raise ValidationError("expires_at must be in the future", field="expires_at")

        await self._authorize_delegation(
            actor_user_id,
            server,
            action="delegation.assign",
            target_user_id=assigned_user_id,
        )

        assignment = await self._delegations.upsert(
            hub_id=server.hub_id,
            server_id=server.id,
            assigned_user_id=assigned_user_id,
            assigned_by_user_id=actor_user_id,
            expires_at=expires_at,
        )
        await self._audit.record(
            actor_user_id=actor_user_id,
            action="delegation.assign",
            scope=scope,
            outcome=AuditOutcome.GRANTED,
            target_user_id=assigned_user_id,
            metadata={
                "assignmentId": assignment.id,
                "expiresAt": expires_at.isoformat() if expires_at else None,
            },
        )
        logger.info(
            "Delegated space_owner on %s to %s by %s", server.id, assigned_user_id, actor_user_id
        )
        return assignment

    async def revoke(self, actor_user_id: str, assignment_id: str) -> SpaceOwnerAssignment:
        """Revoke an active assignment.

        Raises:
            NotFoundError: Assignment missing, or no longer active.
        """
        existing = await self._delegations.get(assignment_id)
        if existing is None:
            raise NotFoundError("space_owner_assignment", assignment_id)
        server = await self._require_server(existing.server_id)

        await self._authorize_delegation(
            actor_user_id,
            server,
            action="delegation.revoke",
            target_user_id=existing.assigned_user_id,
        )

        revoked = await self._delegations.revoke(assignment_id)
        if revoked is None:
            # Revoked or expired since it was read.
            await self._audit.record(
                actor_user_id=actor_user_id,
                action="delegation.revoke",
                scope=Scope(hub_id=server.hub_id, server_id=server.id),
                outcome=AuditOutcome.DENIED,
                reason=NOT_FOUND,
                target_user_id=existing.assigned_user_id,
                metadata={"assignmentId": assignment_id},
            )
            raise NotFoundError("space_owner_assignment", assignment_id)

        await self._audit.record(
            actor_user_id=actor_user_id,
            action="delegation.revoke",
            scope=Scope(hub_id=revoked.hub_id, server_id=revoked.server_id),
            outcome=AuditOutcome.GRANTED,
            target_user_id=revoked.assigned_user_id,
            metadata={"assignmentId": revoked.id},
        )
        return revoked

    async def list_assignments(
        self,
        actor_user_id: str,
        server_id: str,
    ) -> list[SpaceOwnerAssignment]:
        server = await self._require_server(server_id)
        scope = Scope(hub_id=server.hub_id, server_id=server.id)
        bindings = await self._evaluator.effective_bindings(actor_user_id, scope)
        if not any(
            b.role in SERVER_MANAGER_ROLES and scope_matches(b.scope, scope) for b in bindings
        ):
            raise ForbiddenScopeError(action="delegation.list")

        await expire_delegations(self._delegations, self._audit, server_id=server.id)
        return await self._delegations.list_for_server(server.id)

    async def transfer_ownership(
        self,
        actor_user_id: str,
        server_id: str,
        new_owner_user_id: str,
    ) -> ServerRecord:
        """Replace the server owner in one single-row compare-and-set update.

        The update only applies while the owner is still the one this
        decision was made against, so an ex-owner holding a stale read
        cannot overwrite a transfer that already committed.

        Raises:
            NotFoundError: Server does not exist.
            ForbiddenScopeError: Actor is neither hub_admin nor current owner,
                or the owner changed concurrently.
        """
        server = await self._require_server(server_id)
        scope = Scope(hub_id=server.hub_id, server_id=server.id)
        previous_owner = server.owner_user_id
        metadata = {"previousOwnerUserId": previous_owner, "newOwnerUserId": new_owner_user_id}

        allowed = previous_owner == actor_user_id or await self._is_hub_admin(
            actor_user_id, scope
        )
        if not allowed:
            await self._audit.record(
                actor_user_id=actor_user_id,
                action="space.ownership_transfer",
                scope=scope,
                outcome=AuditOutcome.DENIED,
                reason=FORBIDDEN_SCOPE,
                target_user_id=new_owner_user_id,
                metadata=metadata,
            )
            raise ForbiddenScopeError(action="space.ownership_transfer")

        updated = await self._directory.transfer_ownership(
            server.id, new_owner_user_id, expected_owner_user_id=previous_owner
        )
        if updated is None:
            # The owner read above is stale: another transfer committed first
            # (or the server is gone), so this decision no longer holds.
            current = await self._directory.get_server(server.id)
            reason = NOT_FOUND if current is None else FORBIDDEN_SCOPE
            await self._audit.record(
                actor_user_id=actor_user_id,
                action="space.ownership_transfer",
                scope=scope,
                outcome=AuditOutcome.DENIED,
                reason=reason,
                target_user_id=new_owner_user_id,
                metadata={
                    **metadata,
                    "currentOwnerUserId": current.owner_user_id if current else None,
                },
            )
            logger.info(
                "Ownership transfer of %s by %s lost to a concurrent change",
                server.id,
                actor_user_id,
            )
            if current is None:
                raise NotFoundError("server", server_id)
            raise ForbiddenScopeError(action="space.ownership_transfer")

        await self._audit.record(
            actor_user_id=actor_user_id,
            action="space.ownership_transfer",
            scope=scope,
            outcome=AuditOutcome.GRANTED,
            target_user_id=new_owner_user_id,
            metadata=metadata,
        )
        logger.info(
            "Ownership of %s transferred from %s to %s",
            server.id,
            previous_owner,
            new_owner_user_id,
        )
        return updated

    async def sweep_expired(self) -> int:
        """Housekeeping: expire every stale assignment. Not needed for correctness."""
        expired = await expire_delegations(self._delegations, self._audit)
        return len(expired)

    async def _require_server(self, server_id: str) -> ServerRecord:
        server = await self._directory.get_server(server_id)
        if server is None:
            raise NotFoundError("server", server_id)
        return server

    async def _is_hub_admin(self, actor_user_id: str, scope: Scope) -> bool:
        bindings = await self._evaluator.effective_bindings(actor_user_id, scope)
        return any(
            b.role in HUB_MANAGER_ROLES and scope_matches(b.scope, scope) for b in bindings
        )

    async def _authorize_delegation(
        self,
        actor_user_id: str,
        server: ServerRecord,
        *,
        action: str,
        target_user_id: str,
    ) -> None:
        scope = Scope(hub_id=server.hub_id, server_id=server.id)
        decision = await self._authorizer.authorize_grant(actor_user_id, Role.SPACE_OWNER, scope)
        if decision.allowed or server.owner_user_id == actor_user_id:
            return

        await self._audit.record(
            actor_user_id=actor_user_id,
            action=action,
            scope=scope,
            outcome=AuditOutcome.DENIED,
            reason=decision.reason,
            target_user_id=target_user_id,
        )
        logger.info("Denied %s on %s for %s: %s", action, server.id, actor_user_id, decision.reason)
        if decision.reason == FORBIDDEN_SCOPE:
            raise ForbiddenScopeError(action=action)
        raise RoleEscalationDeniedError(role=Role.SPACE_OWNER.value)
