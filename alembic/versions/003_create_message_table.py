"""Create message table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "003"
down_revision: str | None = "002"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "message",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column(
            "recipient_id", sa.String(length=36), sa.ForeignKey("profile.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("message_text", sa.Text(), nullable=True),
        sa.Column("audio_url", sa.String(length=512), nullable=True),
        sa.Column("message_type", sa.String(length=16), nullable=False, server_default="text"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("message_type IN ('text', 'audio', 'both')", name="ck_message_type"),
    )
    op.create_index(op.f("ix_message_recipient_id"), "message", ["recipient_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_message_recipient_id"), table_name="message")
    op.drop_table("message")
