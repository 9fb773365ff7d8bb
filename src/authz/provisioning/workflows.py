"""ProvisioningService - create servers and channels idempotently.

Each workflow is: idempotency executor -> privileged gateway -> effect.
The effect performs the external (non-transactional) call first, with
caller-side retry, then the local insert. A replay with the same key and
payload returns the stored response without touching either side.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from src.infra.auth.rbac import PrivilegedAction
from src.infra.resilience.retry import RetryPolicy, retry_with_backoff
from src.shared.errors import NotFoundError, ValidationError
from src.shared.types import ChannelType, Scope

if TYPE_CHECKING:
    from src.authz.gateway.privileged import PrivilegedActionGateway
    from src.authz.idempotency.executor import IdempotentWorkflowExecutor
    from src.ports.room_provisioning_port import RoomProvisioningPort
    from src.ports.scope_directory_port import ScopeDirectoryPort

logger = logging.getLogger(__name__)

VOICE_MAX_PARTICIPANTS = 25
MAX_NAME_LENGTH = 100


def _validate_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError("name must be non-empty", field="name")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(f"name exceeds {MAX_NAME_LENGTH} characters", field="name")
    return cleaned


class ProvisioningService:
    def __init__(
        self,
        *,
        executor: IdempotentWorkflowExecutor,
        gateway: PrivilegedActionGateway,
        directory: ScopeDirectoryPort,
        rooms: RoomProvisioningPort,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._executor = executor
        self._gateway = gateway
        self._directory = directory
        self._rooms = rooms
        self._retry_policy = retry_policy

    async def create_server(
        self,
        actor_user_id: str,
        *,
        hub_id: str,
        name: str,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Create a server (space.create at hub scope) owned by the actor."""
        name = _validate_name(name)
        payload = {
            "operation": "create_server",
            "actorUserId": actor_user_id,
            "hubId": hub_id,
            "name": name,
        }

        async def effect() -> dict[str, Any]:
            space_id = await retry_with_backoff(
                lambda: self._rooms.create_space(name),
                policy=self._retry_policy,
                operation="create_space",
            )
            server = await self._directory.create_server(
                hub_id=hub_id,
                name=name,
                owner_user_id=actor_user_id,
                external_space_id=space_id,
            )
            logger.info("Server %s created in hub %s by %s", server.id, hub_id, actor_user_id)
            return server.to_dict()

        async def workflow() -> dict[str, Any]:
            return await self._gateway.execute(
                actor_user_id=actor_user_id,
                action=PrivilegedAction.SPACE_CREATE,
                scope=Scope(hub_id=hub_id),
                reason="server_create",
                effect=effect,
                metadata={"name": name},
            )

        return await self._executor.run(idempotency_key, payload, workflow)

    async def create_channel(
        self,
        actor_user_id: str,
        *,
        server_id: str,
        name: str,
        channel_type: ChannelType,
        category_id: str | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Create a channel (channel.create at server scope).

        Voice channels get an SFU room id and a participant cap.
        """
        name = _validate_name(name)
        payload = {
            "operation": "create_channel",
            "actorUserId": actor_user_id,
            "serverId": server_id,
            "name": name,
            "type": channel_type.value,
            "categoryId": category_id,
        }

        async def effect() -> dict[str, Any]:
            server = await self._directory.get_server(server_id)
            if server is None:
                raise NotFoundError("server", server_id)

            room_id = await retry_with_backoff(
                lambda: self._rooms.create_room(name, channel_type),
                policy=self._retry_policy,
                operation="create_room",
            )
            space_id = server.external_space_id
            if space_id and room_id:
                await retry_with_backoff(
                    lambda: self._rooms.attach_child(space_id, room_id),
                    policy=self._retry_policy,
                    operation="attach_child",
                )

            is_voice = channel_type is ChannelType.VOICE
            channel = await self._directory.create_channel(
                server_id=server_id,
                name=name,
                channel_type=channel_type,
                category_id=category_id,
                external_room_id=room_id,
                voice_sfu_room_id=f"sfu_{uuid4().hex}" if is_voice else None,
                voice_max_participants=VOICE_MAX_PARTICIPANTS if is_voice else None,
            )
            logger.info("Channel %s created in %s by %s", channel.id, server_id, actor_user_id)
            return channel.to_dict()

        async def workflow() -> dict[str, Any]:
            return await self._gateway.execute(
                actor_user_id=actor_user_id,
                action=PrivilegedAction.CHANNEL_CREATE,
                scope=Scope(server_id=server_id),
                reason="channel_create",
                effect=effect,
                metadata={"name": name, "type": channel_type.value},
            )

        return await self._executor.run(idempotency_key, payload, workflow)
