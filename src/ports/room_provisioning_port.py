"""RoomProvisioningPort - External chat network (Matrix) boundary.

Soft dependency. create_space/create_room return None when the adapter is
not configured; callers persist the local record without an external id.
Failures of a configured adapter raise AdapterFailureError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.shared.types import ChannelType


class RoomProvisioningPort(ABC):
    """Port: space/room creation and room-level moderation."""

    @abstractmethod
    async def create_space(self, name: str) -> str | None:
        """Create an external space. Returns its id, or None if unconfigured."""

    @abstractmethod
    async def create_room(self, name: str, channel_type: ChannelType) -> str | None:
        """Create an external room. Returns its id, or None if unconfigured."""

    @abstractmethod
    async def attach_child(self, parent_id: str, child_id: str) -> None:
        """Link a room into a space."""

    @abstractmethod
    async def kick(self, room_id: str, user_id: str, reason: str | None = None) -> None: ...

    @abstractmethod
    async def ban(self, room_id: str, user_id: str, reason: str | None = None) -> None: ...

    @abstractmethod
    async def unban(self, room_id: str, user_id: str, reason: str | None = None) -> None: ...

    @abstractmethod
    async def redact(self, room_id: str, event_id: str, reason: str | None = None) -> None:
        """Redact one event (message) in a room."""
