"""PrivilegedActionGateway tests.

Validates:
- Denied: effect never invoked, one "denied" record, ForbiddenScopeError
- Allowed: effect result returned, one "granted" record with metadata
- Effect raising: exception propagates unchanged, one "granted" record
- Unresolvable scope always denies and audits the requested scope
- Request id is stamped into audit metadata
- Decision counters
"""

from __future__ import annotations

import pytest

from src.infra.auth.rbac import PrivilegedAction
from src.shared.errors import AdapterFailureError, ForbiddenScopeError
from src.shared.request_context import request_context
from src.shared.types import AuditOutcome, Scope
from tests.fakes.world import World


class _Effect:
    def __init__(self, result: object = "done", error: Exception | None = None) -> None:
        self.calls = 0
        self._result = result
        self._error = error

    async def __call__(self) -> object:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._result


@pytest.mark.unit
class TestPrivilegedActionGateway:
    @pytest.mark.asyncio
    @pytest.mark.smoke
    async def test_allowed_runs_effect_and_audits_granted(self, world: World) -> None:
        effect = _Effect(result={"ok": True})
        result = await world.services.gateway.execute(
            actor_user_id="mod",
            action=PrivilegedAction.CHANNEL_SLOWMODE,
            scope=Scope(channel_id="chn-text"),
            reason="raid",
            effect=effect,
            metadata={"slowModeSeconds": 30},
        )
        assert result == {"ok": True}
        assert effect.calls == 1
        [record] = world.audit_log.records
        assert record.outcome is AuditOutcome.GRANTED
        assert record.scope == Scope(hub_id="hub-1", server_id="srv-1", channel_id="chn-text")
        assert record.reason == "raid"
        assert record.metadata["slowModeSeconds"] == 30

    @pytest.mark.asyncio
    @pytest.mark.smoke
    async def test_denied_never_runs_effect(self, world: World) -> None:
        effect = _Effect()
        with pytest.raises(ForbiddenScopeError) as exc_info:
            await world.services.gateway.execute(
                actor_user_id="member",
                action=PrivilegedAction.MODERATION_KICK,
                scope=Scope(server_id="srv-1"),
                reason="spam",
                effect=effect,
                target_user_id="troll",
            )
        assert exc_info.value.code == "forbidden_scope"
        assert effect.calls == 0
        [record] = world.audit_log.records
        assert record.outcome is AuditOutcome.DENIED
        assert record.reason == "forbidden_scope"
        assert record.metadata["requestedReason"] == "spam"
        assert record.target_user_id == "troll"

    @pytest.mark.asyncio
    async def test_effect_error_propagates_after_granted_audit(self, world: World) -> None:
        error = AdapterFailureError("synapse", "boom")
        effect = _Effect(error=error)
        with pytest.raises(AdapterFailureError) as exc_info:
            await world.services.gateway.execute(
                actor_user_id="alice",
                action=PrivilegedAction.MODERATION_BAN,
                scope=Scope(server_id="srv-1"),
                reason="abuse",
                effect=effect,
            )
        assert exc_info.value is error
        [record] = world.audit_log.records
        assert record.outcome is AuditOutcome.GRANTED
        assert record.metadata["effectErrorCode"] == "adapter_failure"

    @pytest.mark.asyncio
    async def test_unresolvable_scope_denies_with_requested_scope(self, world: World) -> None:
        effect = _Effect()
        with pytest.raises(ForbiddenScopeError):
            await world.services.gateway.execute(
                actor_user_id="root",
                action=PrivilegedAction.AUDIT_READ,
                scope=Scope(server_id="ghost"),
                reason=None,
                effect=effect,
            )
        assert effect.calls == 0
        [record] = world.audit_log.records
        assert record.scope == Scope(server_id="ghost")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("actor", "fails"),
        [("alice", False), ("member", True), ("root", False), ("carol", True)],
    )
    async def test_exactly_one_record_per_call(
        self, world: World, actor: str, fails: bool
    ) -> None:
        effect = _Effect(error=RuntimeError("x") if not fails else None)
        with pytest.raises((ForbiddenScopeError, RuntimeError)):
            await world.services.gateway.execute(
                actor_user_id=actor,
                action=PrivilegedAction.CHANNEL_POSTING,
                scope=Scope(channel_id="chn-text"),
                reason="r",
                effect=effect,
            )
        assert len(world.audit_log.records) == 1
        expected = AuditOutcome.DENIED if fails else AuditOutcome.GRANTED
        assert world.audit_log.records[0].outcome is expected

    @pytest.mark.asyncio
    async def test_request_id_in_metadata(self, world: World) -> None:
        with request_context("req-123"):
            await world.services.gateway.execute(
                actor_user_id="alice",
                action=PrivilegedAction.MODERATION_KICK,
                scope=Scope(server_id="srv-1"),
                reason="r",
                effect=_Effect(),
            )
        assert world.audit_log.records[0].metadata["requestId"] == "req-123"

    @pytest.mark.asyncio
    async def test_decision_counters(self, world: World) -> None:
        gateway = world.services.gateway
        await gateway.execute(
            actor_user_id="alice",
            action=PrivilegedAction.MODERATION_KICK,
            scope=Scope(server_id="srv-1"),
            reason="r",
            effect=_Effect(),
        )
        with pytest.raises(ForbiddenScopeError):
            await gateway.execute(
                actor_user_id="member",
                action=PrivilegedAction.MODERATION_KICK,
                scope=Scope(server_id="srv-1"),
                reason="r",
                effect=_Effect(),
            )
        name = "hubguard_privileged_decisions_total"
        assert world.metric(name, {"action": "moderation.kick", "outcome": "granted"}) == 1.0
        assert world.metric(name, {"action": "moderation.kick", "outcome": "denied"}) == 1.0
