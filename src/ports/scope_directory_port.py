"""ScopeDirectoryPort - Hub topology lookup and mutation.

Hard dependency of the scope resolver and every privileged workflow.
Real implementation: PostgreSQL (hubs, servers, channels tables).

Every mutation here is a single-row statement keyed by primary key;
callers never read-modify-write across two statements.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.shared.types import (
        ChannelControls,
        ChannelRecord,
        ChannelType,
        HubRecord,
        ServerRecord,
    )


class ScopeDirectoryPort(ABC):
    """Port: hub / server / channel directory."""

    @abstractmethod
    async def get_hub(self, hub_id: str) -> HubRecord | None:
        """Return the hub or None if it does not exist."""

    @abstractmethod
    async def get_server(self, server_id: str) -> ServerRecord | None:
        """Return the server or None if it does not exist."""

    @abstractmethod
    async def get_channel(self, channel_id: str) -> ChannelRecord | None:
        """Return the channel or None if it does not exist."""

    @abstractmethod
    async def create_server(
        self,
        *,
        hub_id: str,
        name: str,
        owner_user_id: str,
        external_space_id: str | None = None,
    ) -> ServerRecord:
        """Insert a server whose owner (and creator) is owner_user_id."""

    @abstractmethod
    async def create_channel(
        self,
        *,
        server_id: str,
        name: str,
        channel_type: ChannelType,
        category_id: str | None = None,
        external_room_id: str | None = None,
        voice_sfu_room_id: str | None = None,
        voice_max_participants: int | None = None,
    ) -> ChannelRecord:
        """Insert a channel under server_id."""

    @abstractmethod
    async def update_channel_controls(
        self,
        channel_id: str,
        controls: ChannelControls,
    ) -> ChannelRecord | None:
        """Apply the non-None fields of controls in one UPDATE.

        Returns:
            The updated channel, or None if the channel does not exist.
        """

    @abstractmethod
    async def transfer_ownership(
        self,
        server_id: str,
        new_owner_user_id: str,
        *,
        expected_owner_user_id: str | None,
    ) -> ServerRecord | None:
        """Replace servers.owner_user_id if it still equals expected_owner_user_id.

        Compare-and-set in a single UPDATE: a transfer that committed after
        the caller read the owner makes this one a no-op.

        Returns:
            The updated server, or None if the server does not exist or its
            owner is no longer expected_owner_user_id.
        """
