"""
Dashboard tables: daily closing snapshots and admin view preferences.

Revision ID: 002
Revises: 001
Create Date: 2026-10-13

CHANGELOG:
- 2026-10-13: Initial creation (STORY-008)

TODO:
- None
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create daily_closing_readings and admin_preferences."""
    op.create_table(
        "daily_closing_readings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "site_id",
            sa.Integer(),
            sa.ForeignKey("sites.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("fuel_level", sa.Text(), nullable=True),
        sa.Column("fuel_volume", sa.Text(), nullable=True),
        sa.Column("temperature", sa.Text(), nullable=True),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_daily_closing_site_latest",
        "daily_closing_readings",
        ["site_id", "captured_at"],
    )

    op.create_table(
        "admin_preferences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, unique=True),
        sa.Column(
            "view_mode", sa.Text(), nullable=False, server_default="closing"
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    """Drop the dashboard tables."""
    op.drop_table("admin_preferences")
    op.drop_index("idx_daily_closing_site_latest", table_name="daily_closing_readings")
    op.drop_table("daily_closing_readings")
