"""SQLAlchemy ORM models for hubguard.

Maps to migration DDL in migrations/versions/:
  001_hub_topology.py        -> HubModel, ServerModel, ChannelModel
  002_authorization.py       -> RoleBindingModel, SpaceOwnerAssignmentModel,
                                AuditEventModel, IdempotencyKeyModel
  003_moderation_reports.py  -> ModerationReportModel

Ids are opaque text (uuid4 hex strings generated by the adapters).
These models live in the Infrastructure layer; authorization code only
sees the dataclasses in src.shared.types.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 -- SQLAlchemy resolves Mapped[] annotations at runtime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

_ID = sa.String(64)
_NOW = sa.text("now()")


class Base(DeclarativeBase):
    """Declarative base for all hubguard ORM models."""


# -- Hub topology --


class HubModel(Base):
    __tablename__ = "hubs"

    id: Mapped[str] = mapped_column(_ID, primary_key=True)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    owner_user_id: Mapped[str] = mapped_column(_ID, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )


class ServerModel(Base):
    """A server (space). owner_user_id confers space_owner on read."""

    __tablename__ = "servers"

    id: Mapped[str] = mapped_column(_ID, primary_key=True)
    hub_id: Mapped[str] = mapped_column(
        _ID,
        sa.ForeignKey("hubs.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    external_space_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    owner_user_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    created_by_user_id: Mapped[str] = mapped_column(_ID, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    __table_args__ = (sa.Index("ix_servers_hub_id", "hub_id"),)


class ChannelModel(Base):
    __tablename__ = "channels"

    id: Mapped[str] = mapped_column(_ID, primary_key=True)
    server_id: Mapped[str] = mapped_column(
        _ID,
        sa.ForeignKey("servers.id", ondelete="CASCADE"),
        nullable=False,
    )
    category_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    type: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    external_room_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    is_locked: Mapped[bool] = mapped_column(
        sa.Boolean(),
        nullable=False,
        server_default=sa.text("false"),
    )
    slow_mode_seconds: Mapped[int] = mapped_column(
        sa.Integer(),
        nullable=False,
        server_default=sa.text("0"),
    )
    posting_restricted_to_roles: Mapped[list[str]] = mapped_column(
        postgresql.ARRAY(sa.String(32)),
        nullable=False,
        server_default=sa.text("'{}'"),
    )
    voice_sfu_room_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    voice_max_participants: Mapped[int | None] = mapped_column(sa.Integer(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    __table_args__ = (
        sa.CheckConstraint("type IN ('text', 'voice', 'announcement')", name="ck_channels_type"),
        sa.CheckConstraint(
            "slow_mode_seconds >= 0 AND slow_mode_seconds <= 600",
            name="ck_channels_slow_mode",
        ),
        sa.Index("ix_channels_server_id", "server_id"),
    )


# -- Authorization --


class RoleBindingModel(Base):
    """Static role binding. Immutable; deleted to revoke."""

    __tablename__ = "role_bindings"

    id: Mapped[str] = mapped_column(_ID, primary_key=True)
    product_user_id: Mapped[str] = mapped_column(_ID, nullable=False)
    role: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    hub_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    server_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    channel_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    __table_args__ = (
        sa.CheckConstraint(
            "role IN ('hub_admin', 'space_owner', 'space_moderator', 'user')",
            name="ck_role_bindings_role",
        ),
        sa.Index("ix_role_bindings_product_user_id", "product_user_id"),
    )


class SpaceOwnerAssignmentModel(Base):
    """Delegated space ownership, unique per (server, user)."""

    __tablename__ = "space_owner_assignments"

    id: Mapped[str] = mapped_column(_ID, primary_key=True)
    hub_id: Mapped[str] = mapped_column(_ID, nullable=False)
    server_id: Mapped[str] = mapped_column(
        _ID,
        sa.ForeignKey("servers.id", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_user_id: Mapped[str] = mapped_column(_ID, nullable=False)
    assigned_by_user_id: Mapped[str] = mapped_column(_ID, nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(16),
        nullable=False,
        server_default="active",
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    __table_args__ = (
        sa.UniqueConstraint(
            "server_id",
            "assigned_user_id",
            name="uq_space_owner_assignments_server_user",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'revoked', 'expired')",
            name="ck_space_owner_assignments_status",
        ),
        sa.Index("ix_space_owner_assignments_status_expires", "status", "expires_at"),
    )


class AuditEventModel(Base):
    """Append-only privileged action log.

    See: 002_authorization migration
    """

    __tablename__ = "audit_events"

    id: Mapped[str] = mapped_column(_ID, primary_key=True)
    actor_user_id: Mapped[str] = mapped_column(_ID, nullable=False)
    action: Mapped[str] = mapped_column(sa.String(128), nullable=False)
    hub_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    server_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    channel_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    target_user_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    target_message_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    outcome: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    reason: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        postgresql.JSONB(),
        nullable=False,
        server_default=sa.text("'{}'::jsonb"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    __table_args__ = (
        sa.CheckConstraint("outcome IN ('granted', 'denied')", name="ck_audit_events_outcome"),
        sa.Index("ix_audit_events_server_created", "server_id", "created_at"),
        sa.Index("ix_audit_events_hub_created", "hub_id", "created_at"),
        sa.Index("ix_audit_events_actor", "actor_user_id"),
    )


class IdempotencyKeyModel(Base):
    __tablename__ = "idempotency_keys"

    idempotency_key: Mapped[str] = mapped_column(sa.String(255), primary_key=True)
    request_hash: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    response_json: Mapped[dict[str, Any]] = mapped_column(postgresql.JSONB(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )


# -- Moderation --


class ModerationReportModel(Base):
    __tablename__ = "moderation_reports"

    id: Mapped[str] = mapped_column(_ID, primary_key=True)
    server_id: Mapped[str] = mapped_column(
        _ID,
        sa.ForeignKey("servers.id", ondelete="CASCADE"),
        nullable=False,
    )
    channel_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    reporter_user_id: Mapped[str] = mapped_column(_ID, nullable=False)
    target_user_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    target_message_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    reason: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(16),
        nullable=False,
        server_default="open",
    )
    triaged_by_user_id: Mapped[str | None] = mapped_column(_ID, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    __table_args__ = (
        sa.CheckConstraint(
            "status IN ('open', 'triaged', 'resolved', 'dismissed')",
            name="ck_moderation_reports_status",
        ),
        sa.Index("ix_moderation_reports_server_status", "server_id", "status"),
    )
