"""Create hubs, servers and channels.

Revision ID: 001_hub_topology
Revises: None
Create Date: 2026-10-17

Rollback: reverse-drop channels, servers, hubs
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001_hub_topology"
down_revision = None
branch_labels = None
depends_on = None

_ID = sa.String(64)
_NOW = sa.text("now()")


def upgrade() -> None:
    # --- hubs ---
    op.create_table(
        "hubs",
        sa.Column("id", _ID, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("owner_user_id", _ID, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_NOW),
    )

    # --- servers ---
    op.create_table(
        "servers",
        sa.Column("id", _ID, primary_key=True),
        sa.Column(
            "hub_id",
            _ID,
            sa.ForeignKey("hubs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "external_space_id",
            sa.String(255),
            nullable=True,
            comment="Matrix space id; null when provisioning is unavailable",
        ),
        sa.Column("owner_user_id", _ID, nullable=True),
        sa.Column("created_by_user_id", _ID, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_servers_hub_id", "servers", ["hub_id"])

    # --- channels ---
    op.create_table(
        "channels",
        sa.Column("id", _ID, primary_key=True),
        sa.Column(
            "server_id",
            _ID,
            sa.ForeignKey("servers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("category_id", _ID, nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("external_room_id", sa.String(255), nullable=True),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("slow_mode_seconds", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "posting_restricted_to_roles",
            postgresql.ARRAY(sa.String(32)),
            nullable=False,
            server_default=sa.text("'{}'"),
        ),
        sa.Column("voice_sfu_room_id", sa.String(255), nullable=True),
        sa.Column("voice_max_participants", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_NOW),
        sa.CheckConstraint("type IN ('text', 'voice', 'announcement')", name="ck_channels_type"),
        sa.CheckConstraint(
            "slow_mode_seconds >= 0 AND slow_mode_seconds <= 600",
            name="ck_channels_slow_mode",
        ),
    )
    op.create_index("ix_channels_server_id", "channels", ["server_id"])


def downgrade() -> None:
    op.drop_table("channels")
    op.drop_table("servers")
    op.drop_table("hubs")
