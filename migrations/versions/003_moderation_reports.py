"""Create moderation_reports.

Revision ID: 003_moderation_reports
Revises: 002_authorization
Create Date: 2026-10-17

Rollback: drop moderation_reports
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "003_moderation_reports"
down_revision = "002_authorization"
branch_labels = None
depends_on = None

_ID = sa.String(64)
_NOW = sa.text("now()")


def upgrade() -> None:
    op.create_table(
        "moderation_reports",
        sa.Column("id", _ID, primary_key=True),
        sa.Column(
            "server_id",
            _ID,
            sa.ForeignKey("servers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("channel_id", _ID, nullable=True),
        sa.Column("reporter_user_id", _ID, nullable=False),
        sa.Column("target_user_id", _ID, nullable=True),
        sa.Column("target_message_id", sa.String(255), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="open"),
        sa.Column("triaged_by_user_id", _ID, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_NOW),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=_NOW),
        sa.CheckConstraint(
            "status IN ('open', 'triaged', 'resolved', 'dismissed')",
            name="ck_moderation_reports_status",
        ),
    )
    op.create_index(
        "ix_moderation_reports_server_status",
        "moderation_reports",
        ["server_id", "status"],
    )


def downgrade() -> None:
    op.drop_table("moderation_reports")
