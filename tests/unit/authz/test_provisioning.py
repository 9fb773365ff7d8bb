"""ProvisioningService tests.

Validates:
- Server creation is space.create at hub scope; creator becomes owner
- Replays return the stored response without new external calls
- Key reuse with another payload conflicts
- External calls are retried; exhausted retries leave no local row
- Voice channels get an SFU room and a participant cap
- Channels attach to the server's space when both exist
"""

from __future__ import annotations

import pytest

from src.authz.provisioning.workflows import VOICE_MAX_PARTICIPANTS
from src.shared.errors import (
    AdapterFailureError,
    ForbiddenScopeError,
    IdempotencyConflictError,
    ValidationError,
)
from src.shared.types import AuditOutcome, ChannelType
from tests.fakes.stores import RecordingRoomProvisioner
from tests.fakes.world import World, build_world


@pytest.mark.unit
class TestCreateServer:
    @pytest.mark.asyncio
    @pytest.mark.smoke
    async def test_hub_admin_creates_server(self, world: World) -> None:
        server = await world.services.provisioning.create_server(
            "root", hub_id="hub-1", name="  General  "
        )
        assert server["name"] == "General"
        assert server["ownerUserId"] == "root"
        assert server["externalSpaceId"] == "!space1:example.org"
        assert world.directory.servers[server["id"]].owner_user_id == "root"
        assert world.audit_log.actions() == ["space.create"]

    @pytest.mark.asyncio
    async def test_member_is_denied_without_external_call(self, world: World) -> None:
        with pytest.raises(ForbiddenScopeError):
            await world.services.provisioning.create_server("member", hub_id="hub-1", name="x")
        assert world.rooms.calls == []
        assert world.audit_log.records[-1].outcome is AuditOutcome.DENIED

    @pytest.mark.asyncio
    async def test_replay_returns_stored_response(self, world: World) -> None:
        provisioning = world.services.provisioning
        first = await provisioning.create_server(
            "root", hub_id="hub-1", name="Lobby", idempotency_key="k-1"
        )
        second = await provisioning.create_server(
            "root", hub_id="hub-1", name="Lobby", idempotency_key="k-1"
        )
        assert second == first
        assert world.rooms.methods() == ["create_space"]
        assert len(world.audit_log.records) == 1

    @pytest.mark.asyncio
    async def test_key_reuse_with_other_payload(self, world: World) -> None:
        provisioning = world.services.provisioning
        await provisioning.create_server("root", hub_id="hub-1", name="A", idempotency_key="k")
        with pytest.raises(IdempotencyConflictError):
            await provisioning.create_server("root", hub_id="hub-1", name="B", idempotency_key="k")
        assert world.rooms.methods() == ["create_space"]

    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(self) -> None:
        world = build_world(RecordingRoomProvisioner(failures={"create_space": 2}))
        server = await world.services.provisioning.create_server("root", hub_id="hub-1", name="S")
        assert world.rooms.methods() == ["create_space"] * 3
        assert server["externalSpaceId"] is not None

    @pytest.mark.asyncio
    async def test_exhausted_retries_create_nothing(self) -> None:
        world = build_world(RecordingRoomProvisioner(failures={"create_space": -1}))
        servers_before = set(world.directory.servers)
        with pytest.raises(AdapterFailureError):
            await world.services.provisioning.create_server(
                "root", hub_id="hub-1", name="S", idempotency_key="k-fail"
            )
        assert set(world.directory.servers) == servers_before
        assert await world.idempotency.get("k-fail") is None
        assert world.audit_log.records[-1].metadata["effectError"] == "RetryExhaustedError"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "x" * 101])
    async def test_invalid_name(self, world: World, name: str) -> None:
        with pytest.raises(ValidationError):
            await world.services.provisioning.create_server("root", hub_id="hub-1", name=name)
        assert world.audit_log.records == []


@pytest.mark.unit
class TestCreateChannel:
    @pytest.mark.asyncio
    async def test_text_channel_attached_to_space(self, world: World) -> None:
        channel = await world.services.provisioning.create_channel(
            "alice", server_id="srv-1", name="news", channel_type=ChannelType.ANNOUNCEMENT
        )
        assert channel["type"] == "announcement"
        assert channel["voiceMetadata"] is None
        assert world.rooms.calls[-1] == ("attach_child", ("!space-1", channel["externalRoomId"]))

    @pytest.mark.asyncio
    async def test_voice_channel_metadata(self, world: World) -> None:
        channel = await world.services.provisioning.create_channel(
            "bob", server_id="srv-2", name="hangout", channel_type=ChannelType.VOICE
        )
        voice = channel["voiceMetadata"]
        assert voice["maxParticipants"] == VOICE_MAX_PARTICIPANTS
        assert voice["sfuRoomId"].startswith("sfu_")
        # srv-2 has no external space to attach to
        assert world.rooms.methods() == ["create_room"]

    @pytest.mark.asyncio
    async def test_moderator_cannot_create(self, world: World) -> None:
        with pytest.raises(ForbiddenScopeError):
            await world.services.provisioning.create_channel(
                "mod", server_id="srv-1", name="x", channel_type=ChannelType.TEXT
            )
        assert world.rooms.calls == []

    @pytest.mark.asyncio
    async def test_unknown_server_is_denied(self, world: World) -> None:
        with pytest.raises(ForbiddenScopeError):
            await world.services.provisioning.create_channel(
                "root", server_id="srv-missing", name="x", channel_type=ChannelType.TEXT
            )
        record = world.audit_log.records[-1]
        assert record.scope.server_id == "srv-missing"
        assert record.outcome is AuditOutcome.DENIED
