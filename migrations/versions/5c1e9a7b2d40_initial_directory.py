"""initial directory and notifications

Revision ID: 5c1e9a7b2d40
Revises:
Create Date: 2026-10-19 09:12:41.503118

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e9a7b2d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

USER_ROLES = (
    "ADMIN",
    "PARTNER",
    "BUSINESS_EXECUTIVE",
    "BUSINESS_CONSULTANT",
    "PERMANENT_CLIENT",
    "GUEST_CLIENT",
)


def upgrade() -> None:
    """Create the user directory and notification tables."""
    op.create_table(
        "user_account",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("role", sa.Enum(*USER_ROLES, name="user_role"), nullable=False),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "notification",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("sent_by_id", sa.String(length=36), nullable=True),
        sa.Column("sent_to_id", sa.String(length=36), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["sent_by_id"], ["user_account.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["sent_to_id"], ["user_account.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_notification_sent_to_id"), "notification", ["sent_to_id"], unique=False
    )


def downgrade() -> None:
    """Drop the notification and user tables."""
    op.drop_index(op.f("ix_notification_sent_to_id"), table_name="notification")
    op.drop_table("notification")
    op.drop_table("user_account")
    sa.Enum(name="user_role").drop(op.get_bind(), checkfirst=True)
