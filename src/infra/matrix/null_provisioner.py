"""NullRoomProvisioner - RoomProvisioningPort for deployments without Matrix.

Create calls return None (no external id); everything else is a no-op.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.ports.room_provisioning_port import RoomProvisioningPort

if TYPE_CHECKING:
    from src.shared.types import ChannelType


class NullRoomProvisioner(RoomProvisioningPort):
    async def create_space(self, name: str) -> str | None:
        return None

    async def create_room(self, name: str, channel_type: ChannelType) -> str | None:
        return None

    async def attach_child(self, parent_id: str, child_id: str) -> None:
        return None

    async def kick(self, room_id: str, user_id: str, reason: str | None = None) -> None:
        return None

    async def ban(self, room_id: str, user_id: str, reason: str | None = None) -> None:
        return None

    async def unban(self, room_id: str, user_id: str, reason: str | None = None) -> None:
        return None

    async def redact(self, room_id: str, event_id: str, reason: str | None = None) -> None:
        return None
