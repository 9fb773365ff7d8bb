"""Effective-role evaluator and PolicyService tests.

Validates:
- Ownership synthesizes space_owner at {hub, server}, never persisted
- An active delegation synthesizes the same binding
- Lapsed delegations are expired before the read and audited once by "system"
- Expiry is monotonic: later checks never see the delegation again
- Ownership transfer moves owner authority atomically
- Duplicate bindings are de-duplicated
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from src.infra.auth.rbac import PrivilegedAction, Role
from src.shared.types import AssignmentStatus, RoleBinding, Scope
from tests.fakes.world import World

SRV1 = Scope(hub_id="hub-1", server_id="srv-1")


def _owner_binding(subject: str) -> RoleBinding:
    return RoleBinding(subject=subject, role=Role.SPACE_OWNER, scope=SRV1)


async def _delegate(world: World, user: str, *, ttl_seconds: int | None) -> str:
    expires_at = world.clock() + timedelta(seconds=ttl_seconds) if ttl_seconds else None
    row = await world.delegations.upsert(
        hub_id="hub-1",
        server_id="srv-1",
        assigned_user_id=user,
        assigned_by_user_id="alice",
        expires_at=expires_at,
    )
    return row.id


@pytest.mark.unit
class TestEffectiveBindings:
    @pytest.mark.asyncio
    async def test_owner_gets_synthesized_space_owner(self, world: World) -> None:
        evaluator = world.services.evaluator
        bindings = await evaluator.effective_bindings("alice", SRV1)
        assert _owner_binding("alice") in bindings
        assert world.bindings.rows.keys() == {"rb-root", "rb-mod", "rb-member"}

    @pytest.mark.asyncio
    async def test_no_server_means_no_synthesis(self, world: World) -> None:
        evaluator = world.services.evaluator
        assert await evaluator.effective_bindings("alice", Scope(hub_id="hub-1")) == []

    @pytest.mark.asyncio
    async def test_static_bindings_are_unfiltered(self, world: World) -> None:
        evaluator = world.services.evaluator
        other_hub = Scope(hub_id="hub-2", server_id="srv-3")
        bindings = await evaluator.effective_bindings("root", other_hub)
        assert [b.id for b in bindings] == ["rb-root"]

    @pytest.mark.asyncio
    async def test_active_delegation_synthesizes_owner(self, world: World) -> None:
        await _delegate(world, "dave", ttl_seconds=60)
        evaluator = world.services.evaluator
        assert _owner_binding("dave") in await evaluator.effective_bindings("dave", SRV1)

    @pytest.mark.asyncio
    async def test_owner_with_static_owner_binding_is_deduplicated(self, world: World) -> None:
        await world.bindings.insert("alice", Role.SPACE_OWNER, SRV1)
        evaluator = world.services.evaluator
        bindings = await evaluator.effective_bindings("alice", SRV1)
        assert bindings.count(_owner_binding("alice")) == 1

    @pytest.mark.asyncio
    @pytest.mark.smoke
    async def test_expired_delegation_never_contributes(self, world: World) -> None:
        assignment_id = await _delegate(world, "dave", ttl_seconds=60)
        world.clock.advance(61)
        evaluator = world.services.evaluator

        assert _owner_binding("dave") not in await evaluator.effective_bindings("dave", SRV1)
        assert world.delegations.rows[assignment_id].status is AssignmentStatus.EXPIRED

        expiries = [r for r in world.audit_log.records if r.action == "delegation.expire"]
        assert len(expiries) == 1
        assert expiries[0].actor_user_id == "system"
        assert expiries[0].target_user_id == "dave"

    @pytest.mark.asyncio
    async def test_expiry_is_monotonic_and_idempotent(self, world: World) -> None:
        await _delegate(world, "dave", ttl_seconds=60)
        world.clock.advance(61)
        evaluator = world.services.evaluator

        for _ in range(3):
            assert _owner_binding("dave") not in await evaluator.effective_bindings("dave", SRV1)
            world.clock.advance(3600)

        assert world.audit_log.actions().count("delegation.expire") == 1


@pytest.mark.unit
class TestPolicyService:
    @pytest.mark.asyncio
    async def test_allowed_actions_for_moderator(self, world: World) -> None:
        actions = await world.services.policy.allowed_actions("mod", Scope(channel_id="chn-text"))
        assert PrivilegedAction.MODERATION_KICK in actions
        assert PrivilegedAction.MODERATION_BAN not in actions

    @pytest.mark.asyncio
    async def test_allowed_actions_outside_bound_server(self, world: World) -> None:
        actions = await world.services.policy.allowed_actions("mod", Scope(server_id="srv-2"))
        assert actions == frozenset()

    @pytest.mark.asyncio
    async def test_unresolvable_scope_allows_nothing(self, world: World) -> None:
        policy = world.services.policy
        assert await policy.allowed_actions("root", Scope(server_id="missing")) == frozenset()
        assert not await policy.is_action_allowed(
            "root", PrivilegedAction.AUDIT_READ, Scope(server_id="missing")
        )

    @pytest.mark.asyncio
    async def test_hub_admin_allowed_across_hub(self, world: World) -> None:
        policy = world.services.policy
        assert await policy.is_action_allowed(
            "root", PrivilegedAction.MODERATION_BAN, Scope(server_id="srv-2")
        )
        assert not await policy.is_action_allowed(
            "root", PrivilegedAction.MODERATION_BAN, Scope(server_id="srv-3")
        )

    @pytest.mark.asyncio
    async def test_can_manage_server(self, world: World) -> None:
        policy = world.services.policy
        assert await policy.can_manage_server("alice", "srv-1")
        assert await policy.can_manage_server("root", "srv-1")
        assert not await policy.can_manage_server("mod", "srv-1")
        assert not await policy.can_manage_server("alice", "srv-2")

    @pytest.mark.asyncio
    async def test_ownership_transfer_moves_authority(self, world: World) -> None:
        await world.services.delegations.transfer_ownership("alice", "srv-1", "erin")
        evaluator = world.services.evaluator

        assert _owner_binding("alice") not in await evaluator.effective_bindings("alice", SRV1)
        assert _owner_binding("erin") in await evaluator.effective_bindings("erin", SRV1)
