"""Create key-value cache tables."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_cache_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Apply cache schema."""
    op.create_table(
        "cache_entries",
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("stored_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("key"),
    )
    op.create_index("ix_cache_entries_expires_at", "cache_entries", ["expires_at"])

    op.create_table(
        "cache_set_members",
        sa.Column("set_name", sa.String(length=255), nullable=False),
        sa.Column("member", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("set_name", "member"),
    )

    op.create_table(
        "cache_list_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("list_name", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cache_list_items_list_name", "cache_list_items", ["list_name"])

    op.create_table(
        "cache_counters",
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    """Revert cache schema."""
    op.drop_table("cache_counters")
    op.drop_index("ix_cache_list_items_list_name", table_name="cache_list_items")
    op.drop_table("cache_list_items")
    op.drop_table("cache_set_members")
    op.drop_index("ix_cache_entries_expires_at", table_name="cache_entries")
    op.drop_table("cache_entries")
