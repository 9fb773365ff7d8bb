"""Create role_bindings, space_owner_assignments, audit_events, idempotency_keys.

Revision ID: 002_authorization
Revises: 001_hub_topology
Create Date: 2026-10-17

Rollback: drop the four tables. audit_events is append-only; downgrading
discards the audit trail, so export it first.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "002_authorization"
down_revision = "001_hub_topology"
branch_labels = None
depends_on = None

_ID = sa.String(64)
_NOW = sa.text("now()")


def upgrade() -> None:
    # --- role_bindings ---
    op.create_table(
        "role_bindings",
        sa.Column("id", _ID, primary_key=True),
        sa.Column("product_user_id", _ID, nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("hub_id", _ID, nullable=True),
        sa.Column("server_id", _ID, nullable=True),
        sa.Column("channel_id", _ID, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_NOW),
        sa.CheckConstraint(
            "role IN ('hub_admin', 'space_owner', 'space_moderator', 'user')",
            name="ck_role_bindings_role",
        ),
    )
    op.create_index("ix_role_bindings_product_user_id", "role_bindings", ["product_user_id"])

    # --- space_owner_assignments ---
    op.create_table(
        "space_owner_assignments",
        sa.Column("id", _ID, primary_key=True),
        sa.Column("hub_id", _ID, nullable=False),
        sa.Column(
            "server_id",
            _ID,
            sa.ForeignKey("servers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("assigned_user_id", _ID, nullable=False),
        sa.Column("assigned_by_user_id", _ID, nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_NOW),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=_NOW),
        sa.UniqueConstraint(
            "server_id",
            "assigned_user_id",
            name="uq_space_owner_assignments_server_user",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'revoked', 'expired')",
            name="ck_space_owner_assignments_status",
        ),
    )
    # Lazy expiry scans active rows by expires_at
    op.create_index(
        "ix_space_owner_assignments_status_expires",
        "space_owner_assignments",
        ["status", "expires_at"],
    )

    # --- audit_events ---
    op.create_table(
        "audit_events",
        sa.Column("id", _ID, primary_key=True),
        sa.Column("actor_user_id", _ID, nullable=False),
        sa.Column(
            "action",
            sa.String(128),
            nullable=False,
            comment="e.g. moderation.ban, role.grant, delegation.expire",
        ),
        sa.Column("hub_id", _ID, nullable=True),
        sa.Column("server_id", _ID, nullable=True),
        sa.Column("channel_id", _ID, nullable=True),
        sa.Column("target_user_id", _ID, nullable=True),
        sa.Column("target_message_id", sa.String(255), nullable=True),
        sa.Column("outcome", sa.String(16), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_NOW),
        sa.CheckConstraint("outcome IN ('granted', 'denied')", name="ck_audit_events_outcome"),
    )
    op.create_index("ix_audit_events_server_created", "audit_events", ["server_id", "created_at"])
    op.create_index("ix_audit_events_hub_created", "audit_events", ["hub_id", "created_at"])
    op.create_index("ix_audit_events_actor", "audit_events", ["actor_user_id"])

    # --- idempotency_keys ---
    op.create_table(
        "idempotency_keys",
        sa.Column("idempotency_key", sa.String(255), primary_key=True),
        sa.Column(
            "request_hash",
            sa.String(64),
            nullable=False,
            comment="SHA-256 hex of the canonical request payload",
        ),
        sa.Column("response_json", postgresql.JSONB, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_NOW),
    )


def downgrade() -> None:
    op.drop_table("idempotency_keys")
    op.drop_table("audit_events")
    op.drop_table("space_owner_assignments")
    op.drop_table("role_bindings")
