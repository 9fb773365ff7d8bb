"""Effective-role evaluation and action policy.

EffectiveRoleEvaluator computes the full authority set of a subject for a
scope query:
  1. expire stale delegations for (server, subject) when a server is given
  2. load every static binding of the subject
  3. synthesize space_owner at {hub, server} from server ownership, or else
     from an active, unexpired delegation
  4. return the de-duplicated union

Synthesized bindings are computed on read and never persisted.

PolicyService layers the permission matrix and scope matcher on top.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.authz.delegation.expiry import expire_delegations
from src.authz.scope.matcher import scope_matches
from src.infra.auth.rbac import (
    SERVER_MANAGER_ROLES,
    PrivilegedAction,
    Role,
    allowed_actions,
)
from src.shared.types import RoleBinding, Scope

if TYPE_CHECKING:
    from src.authz.audit import AuditTrail
    from src.authz.scope.resolver import ScopeResolver
    from src.ports.delegation_port import DelegationPort
    from src.ports.role_binding_port import RoleBindingPort
    from src.ports.scope_directory_port import ScopeDirectoryPort


class EffectiveRoleEvaluator:
    def __init__(
        self,
        *,
        bindings: RoleBindingPort,
        delegations: DelegationPort,
        directory: ScopeDirectoryPort,
        audit: AuditTrail | None = None,
    ) -> None:
        self._bindings = bindings
        self._delegations = delegations
        self._directory = directory
        self._audit = audit

    async def effective_bindings(self, subject: str, scope: Scope) -> list[RoleBinding]:
        """Return static plus synthesized bindings for subject.

        The expiry pass runs before any read so a delegation that has just
        lapsed never contributes authority to this decision.
        """
        if scope.server_id is not None:
            await expire_delegations(
                self._delegations, self._audit, server_id=scope.server_id, user_id=subject
            )

        result = list(await self._bindings.list_for_subject(subject))

        if scope.server_id is not None:
            synthesized = await self._synthesized_owner(subject, scope.server_id)
            if synthesized is not None:
                result.append(synthesized)

        return _dedupe(result)

    async def _synthesized_owner(self, subject: str, server_id: str) -> RoleBinding | None:
        server = await self._directory.get_server(server_id)
        if server is None:
            return None

        owner_scope = Scope(hub_id=server.hub_id, server_id=server.id)
        if server.owner_user_id == subject:
            return RoleBinding(subject=subject, role=Role.SPACE_OWNER, scope=owner_scope)

        assignment = await self._delegations.find_active(server.id, subject)
        if assignment is not None:
            return RoleBinding(subject=subject, role=Role.SPACE_OWNER, scope=owner_scope)
        return None


def _dedupe(bindings: list[RoleBinding]) -> list[RoleBinding]:
    seen: set[RoleBinding] = set()
    unique: list[RoleBinding] = []
    for binding in bindings:
        if binding in seen:
            continue
        seen.add(binding)
        unique.append(binding)
    return unique


def bindings_allow(
    bindings: list[RoleBinding],
    action: PrivilegedAction,
    scope: Scope,
) -> bool:
    """True when some binding both covers scope and carries action.

    The empty scope (unresolved) never matches.
    """
    if scope.is_empty:
        return False
    return any(
        action in allowed_actions(binding.role) and scope_matches(binding.scope, scope)
        for binding in bindings
    )


class PolicyService:
    """Read-only policy queries (what can this subject do here?)."""

    def __init__(self, *, resolver: ScopeResolver, evaluator: EffectiveRoleEvaluator) -> None:
        self._resolver = resolver
        self._evaluator = evaluator

    async def is_action_allowed(
        self,
        subject: str,
        action: PrivilegedAction,
        scope: Scope,
    ) -> bool:
        resolved = await self._resolver.resolve(scope)
        if resolved.is_empty:
            return False
        bindings = await self._evaluator.effective_bindings(subject, resolved)
        return bindings_allow(bindings, action, resolved)

    async def allowed_actions(self, subject: str, scope: Scope) -> frozenset[PrivilegedAction]:
        """Union of matrix entries over every binding covering scope."""
        resolved = await self._resolver.resolve(scope)
        if resolved.is_empty:
            return frozenset()
        bindings = await self._evaluator.effective_bindings(subject, resolved)
        actions: set[PrivilegedAction] = set()
        for binding in bindings:
            if scope_matches(binding.scope, resolved):
                actions |= allowed_actions(binding.role)
        return frozenset(actions)

    async def can_manage_server(self, subject: str, server_id: str) -> bool:
        """True for a hub_admin over the server's hub or any space owner of it."""
        resolved = await self._resolver.resolve(Scope(server_id=server_id))
        if resolved.is_empty:
            return False
        bindings = await self._evaluator.effective_bindings(subject, resolved)
        return any(
            binding.role in SERVER_MANAGER_ROLES and scope_matches(binding.scope, resolved)
            for binding in bindings
        )
