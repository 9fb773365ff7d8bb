"""Shared domain types used across layers.

These types flow through Port interfaces and must remain stable.
Roles and privileged actions are defined with the permission matrix in
src.infra.auth.rbac; everything else that crosses a port lives here.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from src.infra.auth.rbac import Role


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# -- Scope / bindings --


@dataclass(frozen=True)
class Scope:
    """Hub -> server -> channel scope triple.

    In a binding, an absent component is a wildcard. In a query, an absent
    component means that axis is not being checked.
    """

    hub_id: str | None = None
    server_id: str | None = None
    channel_id: str | None = None

    @classmethod
    def empty(cls) -> Scope:
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.hub_id is None and self.server_id is None and self.channel_id is None

    @property
    def is_hub_level(self) -> bool:
        """True when only the hub axis is fixed."""
        return self.hub_id is not None and self.server_id is None and self.channel_id is None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "hubId": self.hub_id,
            "serverId": self.server_id,
            "channelId": self.channel_id,
        }


@dataclass(frozen=True)
class RoleBinding:
    """(subject, role, scope) tuple.

    Static bindings carry the persisted row id. Bindings synthesized from
    ownership or delegation have id=None. Equality ignores the id so that a
    union of static and synthesized bindings de-duplicates.
    """

    subject: str
    role: Role
    scope: Scope
    id: str | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "productUserId": self.subject,
            "role": self.role.value,
            **self.scope.to_dict(),
        }


# -- Delegation --


class AssignmentStatus(enum.Enum):
    """SpaceOwnerAssignment lifecycle states."""

    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


@dataclass(frozen=True)
class SpaceOwnerAssignment:
    """Time-bounded delegation of the space-owner role on one server."""

    id: str
    hub_id: str
    server_id: str
    assigned_user_id: str
    assigned_by_user_id: str
    status: AssignmentStatus
    created_at: datetime
    updated_at: datetime
    expires_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "hubId": self.hub_id,
            "serverId": self.server_id,
            "assignedUserId": self.assigned_user_id,
            "assignedByUserId": self.assigned_by_user_id,
            "status": self.status.value,
            "expiresAt": _iso(self.expires_at),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


# -- Audit --


class AuditOutcome(enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"


@dataclass(frozen=True)
class AuditEntry:
    """Input for one append-only audit record."""

    actor_user_id: str
    action: str
    scope: Scope
    outcome: AuditOutcome
    reason: str | None = None
    target_user_id: str | None = None
    target_message_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AuditRecord:
    """A persisted audit record (never mutated or deleted)."""

    id: str
    actor_user_id: str
    action: str
    scope: Scope
    outcome: AuditOutcome
    created_at: datetime
    reason: str | None = None
    target_user_id: str | None = None
    target_message_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "actorUserId": self.actor_user_id,
            "action": self.action,
            **self.scope.to_dict(),
            "targetUserId": self.target_user_id,
            "targetMessageId": self.target_message_id,
            "outcome": self.outcome.value,
            "reason": self.reason,
            "metadata": dict(self.metadata),
            "createdAt": _iso(self.created_at),
        }


# -- Idempotency --


@dataclass(frozen=True)
class IdempotencyRecord:
    key: str
    request_hash: str
    response: dict[str, Any]


# -- Hub topology --


class ChannelType(enum.Enum):
    TEXT = "text"
    VOICE = "voice"
    ANNOUNCEMENT = "announcement"


@dataclass(frozen=True)
class HubRecord:
    id: str
    name: str
    owner_user_id: str
    created_at: datetime


@dataclass(frozen=True)
class ServerRecord:
    """A server (space) inside a hub.

    owner_user_id always confers space_owner at {hub_id, server_id}.
    """

    id: str
    hub_id: str
    name: str
    owner_user_id: str | None
    created_by_user_id: str
    created_at: datetime
    external_space_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "hubId": self.hub_id,
            "name": self.name,
            "externalSpaceId": self.external_space_id,
            "ownerUserId": self.owner_user_id,
            "createdByUserId": self.created_by_user_id,
            "createdAt": _iso(self.created_at),
        }


@dataclass(frozen=True)
class ChannelRecord:
    id: str
    server_id: str
    name: str
    channel_type: ChannelType
    created_at: datetime
    category_id: str | None = None
    external_room_id: str | None = None
    is_locked: bool = False
    slow_mode_seconds: int = 0
    posting_restricted_to_roles: tuple[str, ...] = ()
    voice_sfu_room_id: str | None = None
    voice_max_participants: int | None = None

    def to_dict(self) -> dict[str, Any]:
        voice = None
        if self.voice_sfu_room_id and self.voice_max_participants:
            voice = {
                "sfuRoomId": self.voice_sfu_room_id,
                "maxParticipants": self.voice_max_participants,
            }
        return {
            "id": self.id,
            "serverId": self.server_id,
            "categoryId": self.category_id,
            "name": self.name,
            "type": self.channel_type.value,
            "externalRoomId": self.external_room_id,
            "isLocked": self.is_locked,
            "slowModeSeconds": self.slow_mode_seconds,
            "postingRestrictedToRoles": list(self.posting_restricted_to_roles),
            "voiceMetadata": voice,
            "createdAt": _iso(self.created_at),
        }


@dataclass(frozen=True)
class ChannelControls:
    """Partial update of channel moderation controls (None = unchanged)."""

    is_locked: bool | None = None
    slow_mode_seconds: int | None = None
    posting_restricted_to_roles: tuple[Role, ...] | None = None


# -- Moderation reports --


class ReportStatus(enum.Enum):
    OPEN = "open"
    TRIAGED = "triaged"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


@dataclass(frozen=True)
class ModerationReport:
    id: str
    server_id: str
    reporter_user_id: str
    reason: str
    status: ReportStatus
    created_at: datetime
    updated_at: datetime
    channel_id: str | None = None
    target_user_id: str | None = None
    target_message_id: str | None = None
    triaged_by_user_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "serverId": self.server_id,
            "channelId": self.channel_id,
            "reporterUserId": self.reporter_user_id,
            "targetUserId": self.target_user_id,
            "targetMessageId": self.target_message_id,
            "reason": self.reason,
            "status": self.status.value,
            "triagedByUserId": self.triaged_by_user_id,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


# -- Voice --


@dataclass(frozen=True)
class VoiceTokenGrant:
    channel_id: str
    server_id: str
    sfu_room_id: str
    participant_user_id: str
    token: str
    expires_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "channelId": self.channel_id,
            "serverId": self.server_id,
            "sfuRoomId": self.sfu_room_id,
            "participantUserId": self.participant_user_id,
            "token": self.token,
            "expiresAt": _iso(self.expires_at),
        }
