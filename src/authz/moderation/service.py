"""ModerationService - moderation actions, channel controls, audit log reads.

All operations run through PrivilegedActionGateway, so each call produces
exactly one audit record whatever the outcome. Room-level effects go to the
channel's external room when there is one, else to the server's external
space; with neither, the action is recorded locally only.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

from src.infra.auth.rbac import PrivilegedAction
from src.shared.errors import NotFoundError, ValidationError
from src.shared.types import ChannelControls, Scope

if TYPE_CHECKING:
    from src.authz.gateway.privileged import PrivilegedActionGateway
    from src.infra.auth.rbac import Role
    from src.ports.audit_log_port import AuditLogPort
    from src.ports.room_provisioning_port import RoomProvisioningPort
    from src.ports.scope_directory_port import ScopeDirectoryPort
    from src.shared.types import AuditRecord, ChannelRecord

logger = logging.getLogger(__name__)

MAX_SLOW_MODE_SECONDS = 600
MAX_AUDIT_PAGE = 200


@enum.unique
class ModerationKind(enum.Enum):
    KICK = "kick"
    BAN = "ban"
    UNBAN = "unban"
    TIMEOUT = "timeout"
    REDACT_MESSAGE = "redact_message"


_ACTION_FOR_KIND: dict[ModerationKind, PrivilegedAction] = {
    ModerationKind.KICK: PrivilegedAction.MODERATION_KICK,
    ModerationKind.BAN: PrivilegedAction.MODERATION_BAN,
    ModerationKind.UNBAN: PrivilegedAction.MODERATION_UNBAN,
    ModerationKind.TIMEOUT: PrivilegedAction.MODERATION_TIMEOUT,
    ModerationKind.REDACT_MESSAGE: PrivilegedAction.MODERATION_REDACT,
}


class ModerationService:
    def __init__(
        self,
        *,
        gateway: PrivilegedActionGateway,
        directory: ScopeDirectoryPort,
        rooms: RoomProvisioningPort,
        audit_log: AuditLogPort,
    ) -> None:
        self._gateway = gateway
        self._directory = directory
        self._rooms = rooms
        self._audit_log = audit_log

    async def perform(
        self,
        actor_user_id: str,
        kind: ModerationKind,
        *,
        server_id: str,
        reason: str,
        channel_id: str | None = None,
        target_user_id: str | None = None,
        target_message_id: str | None = None,
        timeout_seconds: int | None = None,
    ) -> None:
        """Perform one moderation action.

        Raises:
            ValidationError: Missing target for the kind of action.
            ForbiddenScopeError: Actor lacks the action at the scope.
            AdapterFailureError: The room adapter call failed (after audit).
        """
        if kind is ModerationKind.REDACT_MESSAGE:
            if not target_message_id:
                raise ValidationError("target_message_id is required", field="target_message_id")
            if not channel_id:
                raise ValidationError("channel_id is required to redact", field="channel_id")
        elif not target_user_id:
            raise ValidationError("target_user_id is required", field="target_user_id")

        metadata: dict[str, int] = {}
        if kind is ModerationKind.TIMEOUT:
            if timeout_seconds is None or timeout_seconds <= 0:
                raise ValidationError("timeout_seconds must be positive", field="timeout_seconds")
            metadata["timeoutSeconds"] = timeout_seconds

        async def effect() -> None:
            room_id = await self._target_room(server_id, channel_id)
            if room_id is None:
                logger.debug("No external room for %s/%s, local record only", server_id, channel_id)
                return
            if kind is ModerationKind.KICK:
                await self._rooms.kick(room_id, target_user_id, reason)
            elif kind is ModerationKind.BAN:
                await self._rooms.ban(room_id, target_user_id, reason)
            elif kind is ModerationKind.UNBAN:
                await self._rooms.unban(room_id, target_user_id, reason)
            elif kind is ModerationKind.REDACT_MESSAGE:
                await self._rooms.redact(room_id, target_message_id, reason)
            # Timeouts are enforced by the product, not the chat network.

        await self._gateway.execute(
            actor_user_id=actor_user_id,
            action=_ACTION_FOR_KIND[kind],
            scope=Scope(server_id=server_id, channel_id=channel_id),
            reason=reason,
            effect=effect,
            metadata=metadata,
            target_user_id=target_user_id,
            target_message_id=target_message_id,
        )

    async def set_channel_controls(
        self,
        actor_user_id: str,
        channel_id: str,
        *,
        reason: str,
        server_id: str | None = None,
        lock: bool | None = None,
        slow_mode_seconds: int | None = None,
        posting_restricted_to_roles: tuple[Role, ...] | None = None,
    ) -> ChannelRecord | None:
        """Apply channel controls, one gateway call per control supplied.

        Returns:
            The channel after the last update, or None if nothing was supplied.
        """
        if slow_mode_seconds is not None and not 0 <= slow_mode_seconds <= MAX_SLOW_MODE_SECONDS:
            raise ValidationError(
                f"slow_mode_seconds must be between 0 and {MAX_SLOW_MODE_SECONDS}",
                field="slow_mode_seconds",
            )

        updated: ChannelRecord | None = None

        if lock is not None:
            updated = await self._update_controls(
                actor_user_id,
                PrivilegedAction.CHANNEL_LOCK if lock else PrivilegedAction.CHANNEL_UNLOCK,
                channel_id,
                server_id,
                reason,
                ChannelControls(is_locked=lock),
                {},
            )
        if slow_mode_seconds is not None:
            updated = await self._update_controls(
                actor_user_id,
                PrivilegedAction.CHANNEL_SLOWMODE,
                channel_id,
                server_id,
                reason,
                ChannelControls(slow_mode_seconds=slow_mode_seconds),
                {"slowModeSeconds": slow_mode_seconds},
            )
        if posting_restricted_to_roles is not None:
            updated = await self._update_controls(
                actor_user_id,
                PrivilegedAction.CHANNEL_POSTING,
                channel_id,
                server_id,
                reason,
                ChannelControls(posting_restricted_to_roles=posting_restricted_to_roles),
                {"roles": [role.value for role in posting_restricted_to_roles]},
            )
        return updated

    async def list_audit_logs(
        self,
        actor_user_id: str,
        server_id: str,
        limit: int = MAX_AUDIT_PAGE,
    ) -> list[AuditRecord]:
        """Newest-first audit records for a server (audit.read)."""
        page = max(1, min(limit, MAX_AUDIT_PAGE))
        scope = Scope(server_id=server_id)

        async def effect() -> list[AuditRecord]:
            return await self._audit_log.list_events(scope, limit=page)

        return await self._gateway.execute(
            actor_user_id=actor_user_id,
            action=PrivilegedAction.AUDIT_READ,
            scope=scope,
            reason="audit_log_read",
            effect=effect,
            metadata={"limit": page},
        )

    async def _update_controls(
        self,
        actor_user_id: str,
        action: PrivilegedAction,
        channel_id: str,
        server_id: str | None,
        reason: str,
        controls: ChannelControls,
        metadata: dict[str, object],
    ) -> ChannelRecord:
        scope = Scope(server_id=server_id, channel_id=channel_id)

        async def effect() -> ChannelRecord:
            channel = await self._directory.update_channel_controls(channel_id, controls)
            if channel is None:
                raise NotFoundError("channel", channel_id)
            return channel

        return await self._gateway.execute(
            actor_user_id=actor_user_id,
            action=action,
            scope=scope,
            reason=reason,
            effect=effect,
            metadata=metadata,
        )

    async def _target_room(self, server_id: str, channel_id: str | None) -> str | None:
        if channel_id is not None:
            channel = await self._directory.get_channel(channel_id)
            if channel is not None and channel.external_room_id:
                return channel.external_room_id
        server = await self._directory.get_server(server_id)
        if server is not None:
            return server.external_space_id
        return None
