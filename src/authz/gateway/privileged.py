"""PrivilegedActionGateway - authorize, execute, audit.

Every privileged side effect in hubguard runs through execute():

  resolve scope -> effective bindings -> matrix + scope matcher
    denied  -> audit "denied" (reason forbidden_scope), raise ForbiddenScopeError,
               effect is never invoked
    allowed -> await effect(), audit "granted"; if the effect raises the
               record is still written and the exception propagates unchanged

Exactly one audit record per call. The gateway never retries; callers wrap
adapter calls inside the effect with retry_with_backoff when needed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from src.authz.roles.evaluator import bindings_allow
from src.shared.errors import ForbiddenScopeError
from src.shared.types import AuditOutcome

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.authz.audit import AuditTrail
    from src.authz.metrics import AuthzMetrics
    from src.authz.roles.evaluator import EffectiveRoleEvaluator
    from src.authz.scope.resolver import ScopeResolver
    from src.infra.auth.rbac import PrivilegedAction
    from src.shared.types import Scope

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PrivilegedActionGateway:
    def __init__(
        self,
        *,
        resolver: ScopeResolver,
        evaluator: EffectiveRoleEvaluator,
        audit: AuditTrail,
        metrics: AuthzMetrics | None = None,
    ) -> None:
        self._resolver = resolver
        self._evaluator = evaluator
        self._audit = audit
        self._metrics = metrics

    async def execute(
        self,
        *,
        actor_user_id: str,
        action: PrivilegedAction,
        scope: Scope,
        reason: str | None,
        effect: Callable[[], Awaitable[T]],
        metadata: dict[str, Any] | None = None,
        target_user_id: str | None = None,
        target_message_id: str | None = None,
    ) -> T:
        """Run effect if actor may perform action at scope.

        Args:
            actor_user_id: Product user id of the caller.
            action: Privileged action being attempted.
            scope: Partial scope; ancestors are filled in by the resolver.
            reason: Caller-supplied justification, stored on the audit record.
            effect: Zero-argument coroutine factory performing the side effect.
            metadata: Extra audit metadata.

        Returns:
            Whatever effect returns.

        Raises:
            ForbiddenScopeError: Actor lacks the action at the resolved scope.
        """
        resolved = await self._resolver.resolve(scope)
        audit_scope = scope if resolved.is_empty else resolved
        meta = dict(metadata or {})

        allowed = False
        if not resolved.is_empty:
            bindings = await self._evaluator.effective_bindings(actor_user_id, resolved)
            allowed = bindings_allow(bindings, action, resolved)

        if not allowed:
            if reason:
                meta["requestedReason"] = reason
            self._count(action, AuditOutcome.DENIED)
            logger.info(
                "Denied %s for %s at %s", action.value, actor_user_id, audit_scope.to_dict()
            )
            await self._audit.record(
                actor_user_id=actor_user_id,
                action=action.value,
                scope=audit_scope,
                outcome=AuditOutcome.DENIED,
                reason="forbidden_scope",
                target_user_id=target_user_id,
                target_message_id=target_message_id,
                metadata=meta,
            )
            raise ForbiddenScopeError(action=action.value)

        self._count(action, AuditOutcome.GRANTED)
        try:
            result = await effect()
        except Exception as exc:
            meta["effectError"] = type(exc).__name__
            meta["effectErrorCode"] = getattr(exc, "code", "internal_error")
            logger.warning(
                "Effect of %s by %s failed: %s", action.value, actor_user_id, exc
            )
            await self._audit.record(
                actor_user_id=actor_user_id,
                action=action.value,
                scope=audit_scope,
                outcome=AuditOutcome.GRANTED,
                reason=reason,
                target_user_id=target_user_id,
                target_message_id=target_message_id,
                metadata=meta,
            )
            raise

        await self._audit.record(
            actor_user_id=actor_user_id,
            action=action.value,
            scope=audit_scope,
            outcome=AuditOutcome.GRANTED,
            reason=reason,
            target_user_id=target_user_id,
            target_message_id=target_message_id,
            metadata=meta,
        )
        return result

    def _count(self, action: PrivilegedAction, outcome: AuditOutcome) -> None:
        if self._metrics is not None:
            self._metrics.record_privileged(action.value, outcome.value)
