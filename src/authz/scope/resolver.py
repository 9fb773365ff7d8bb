"""Scope resolver: complete a partial scope from the hub directory.

Looks up channel -> server -> hub and fills in missing ancestors. The
result is the empty scope (which matches nothing downstream) when:
  - a supplied id does not exist
  - a supplied ancestor contradicts the looked-up one

Never raises for missing rows; directory errors propagate.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.shared.types import Scope

if TYPE_CHECKING:
    from src.ports.scope_directory_port import ScopeDirectoryPort

logger = logging.getLogger(__name__)


class ScopeResolver:
    def __init__(self, directory: ScopeDirectoryPort) -> None:
        self._directory = directory

    async def resolve(self, partial: Scope) -> Scope:
        hub_id = partial.hub_id
        server_id = partial.server_id
        channel_id = partial.channel_id

        if channel_id is not None:
            channel = await self._directory.get_channel(channel_id)
            if channel is None:
                return self._unresolved(partial, "channel not found")
            if server_id is not None and server_id != channel.server_id:
                return self._unresolved(partial, "channel/server mismatch")
            server_id = channel.server_id

        if server_id is not None:
            server = await self._directory.get_server(server_id)
            if server is None:
                return self._unresolved(partial, "server not found")
            if hub_id is not None and hub_id != server.hub_id:
                return self._unresolved(partial, "server/hub mismatch")
            hub_id = server.hub_id
        elif hub_id is not None:
            hub = await self._directory.get_hub(hub_id)
            if hub is None:
                return self._unresolved(partial, "hub not found")

        return Scope(hub_id=hub_id, server_id=server_id, channel_id=channel_id)

    @staticmethod
    def _unresolved(partial: Scope, why: str) -> Scope:
        logger.info("Scope %s unresolved: %s", partial.to_dict(), why)
        return Scope.empty()
