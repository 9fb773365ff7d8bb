"""Role-grant authorization and the grant/revoke service.

RoleGrantAuthorizer.authorize_grant applies these rules in order; the
first failing rule decides:

  1. resolved scope has no hub                        -> role_escalation_denied
  2. hub_admin requested below hub level              -> role_escalation_denied
  3. space_owner / space_moderator without a server   -> role_escalation_denied
  4. stale delegations expired, effective bindings computed
  5. no manager binding over the scope                -> forbidden_scope
       hub-level scope:    hub_admin
       server-level scope: hub_admin or space_owner
  6. role not assignable by the manager roles held    -> role_escalation_denied
  7. allowed

Roles flow downward only: a space owner can never mint hub_admin or
another space_owner.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from src.authz.scope.matcher import scope_matches
from src.infra.auth.rbac import (
    HUB_MANAGER_ROLES,
    SERVER_MANAGER_ROLES,
    SERVER_SCOPED_ROLES,
    Role,
    assignable_roles,
)
from src.shared.errors import (
    ForbiddenScopeError,
    NotFoundError,
    RoleEscalationDeniedError,
)
from src.shared.types import AuditOutcome, Scope

if TYPE_CHECKING:
    from src.authz.audit import AuditTrail
    from src.authz.metrics import AuthzMetrics
    from src.authz.roles.evaluator import EffectiveRoleEvaluator
    from src.authz.scope.resolver import ScopeResolver
    from src.ports.role_binding_port import RoleBindingPort
    from src.shared.types import RoleBinding

logger = logging.getLogger(__name__)

FORBIDDEN_SCOPE = "forbidden_scope"
ROLE_ESCALATION_DENIED = "role_escalation_denied"
NOT_FOUND = "not_found"


@dataclass(frozen=True)
class GrantDecision:
    allowed: bool
    resolved_scope: Scope
    reason: str | None = None


class RoleGrantAuthorizer:
    def __init__(self, *, resolver: ScopeResolver, evaluator: EffectiveRoleEvaluator) -> None:
        self._resolver = resolver
        self._evaluator = evaluator

    async def authorize_grant(
        self,
        actor_user_id: str,
        target_role: Role,
        requested_scope: Scope,
    ) -> GrantDecision:
        scope = await self._resolver.resolve(requested_scope)

        if scope.hub_id is None:
            return GrantDecision(False, scope, ROLE_ESCALATION_DENIED)

        if target_role is Role.HUB_ADMIN and not scope.is_hub_level:
            return GrantDecision(False, scope, ROLE_ESCALATION_DENIED)

        if target_role in SERVER_SCOPED_ROLES and scope.server_id is None:
            return GrantDecision(False, scope, ROLE_ESCALATION_DENIED)

        # Evaluator runs the delegation expiry pass first.
        bindings = await self._evaluator.effective_bindings(actor_user_id, scope)

        required = HUB_MANAGER_ROLES if scope.server_id is None else SERVER_MANAGER_ROLES
        manager_roles = {
            binding.role
            for binding in bindings
            if binding.role in required and scope_matches(binding.scope, scope)
        }
        if not manager_roles:
            return GrantDecision(False, scope, FORBIDDEN_SCOPE)

        if target_role not in assignable_roles(manager_roles):
            return GrantDecision(False, scope, ROLE_ESCALATION_DENIED)

        return GrantDecision(True, scope)


def _raise_for(decision: GrantDecision, role: Role) -> None:
    if decision.reason == FORBIDDEN_SCOPE:
        raise ForbiddenScopeError(
            action="role.grant",
            message="Forbidden: actor does not manage this scope",
        )
    raise RoleEscalationDeniedError(role=role.value)


class RoleGrantService:
    """Grant and revoke static role bindings, auditing every decision."""

    def __init__(
        self,
        *,
        authorizer: RoleGrantAuthorizer,
        bindings: RoleBindingPort,
        audit: AuditTrail,
        metrics: AuthzMetrics | None = None,
    ) -> None:
        self._authorizer = authorizer
        self._bindings = bindings
        self._audit = audit
        self._metrics = metrics

    async def grant(
        self,
        actor_user_id: str,
        target_user_id: str,
        role: Role,
        scope: Scope,
    ) -> RoleBinding:
        """Authorize, audit, then persist a static binding at the resolved scope.

        Raises:
            ForbiddenScopeError: Actor does not manage the scope.
            RoleEscalationDeniedError: Actor cannot hand out role there.
        """
        decision = await self._authorizer.authorize_grant(actor_user_id, role, scope)
        await self._record(
            "role.grant",
            actor_user_id,
            target_user_id,
            role,
            decision,
            audit_scope=decision.resolved_scope if not decision.resolved_scope.is_empty else scope,
        )
        if not decision.allowed:
            _raise_for(decision, role)

        binding = await self._bindings.insert(target_user_id, role, decision.resolved_scope)
        logger.info(
            "Granted %s to %s at %s by %s",
            role.value,
            target_user_id,
            decision.resolved_scope.to_dict(),
            actor_user_id,
        )
        return binding

    async def revoke(self, actor_user_id: str, binding_id: str) -> None:
        """Delete a static binding.

        Revoking requires the same authority as granting that role at that
        scope, so a space owner cannot remove a hub admin.
        """
        binding = await self._bindings.get(binding_id)
        if binding is None:
            raise NotFoundError("role_binding", binding_id)

        decision = await self._authorizer.authorize_grant(
            actor_user_id, binding.role, binding.scope
        )
        await self._record(
            "role.revoke",
            actor_user_id,
            binding.subject,
            binding.role,
            decision,
            audit_scope=binding.scope,
            extra={"bindingId": binding_id},
        )
        if not decision.allowed:
            _raise_for(decision, binding.role)

        await self._bindings.delete(binding_id)
        logger.info("Revoked binding %s (%s) by %s", binding_id, binding.role.value, actor_user_id)

    async def _record(
        self,
        action: str,
        actor_user_id: str,
        target_user_id: str,
        role: Role,
        decision: GrantDecision,
        *,
        audit_scope: Scope,
        extra: dict[str, str] | None = None,
    ) -> None:
        outcome = AuditOutcome.GRANTED if decision.allowed else AuditOutcome.DENIED
        if self._metrics is not None:
            self._metrics.record_grant(role.value, outcome.value)
        if not decision.allowed:
            logger.info(
                "Denied %s of %s by %s: %s", action, role.value, actor_user_id, decision.reason
            )
        await self._audit.record(
            actor_user_id=actor_user_id,
            action=action,
            scope=audit_scope,
            outcome=outcome,
            reason=decision.reason,
            target_user_id=target_user_id,
            metadata={"role": role.value, **(extra or {})},
        )
