"""
Initial schema: sensor readings, sites, assignments and cumulative readings.

Creates the raw ``sensor_readings`` table with its (device_id, sensor_name,
time) index, the ``sites`` and ``user_site_assignments`` tables, and the
``cumulative_readings`` table with its (site_id, date) uniqueness
constraint used as the upsert conflict target.

Revision ID: 001
Revises: None
Create Date: 2026-10-12

CHANGELOG:
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _metric(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=False)


def upgrade() -> None:
    """Create the core tables."""
    op.create_table(
        "sensor_readings",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("device_id", sa.Text(), nullable=False),
        sa.Column("sensor_name", sa.Text(), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("time", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_sensor_readings_device_time",
        "sensor_readings",
        ["device_id", "sensor_name", "time"],
    )

    op.create_table(
        "sites",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("location", sa.Text(), nullable=False, server_default=""),
        sa.Column("device_id", sa.Text(), nullable=False, unique=True),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "user_site_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "site_id",
            sa.Integer(),
            sa.ForeignKey("sites.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("user_id", "site_id"),
    )

    op.create_table(
        "cumulative_readings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "site_id",
            sa.Integer(),
            sa.ForeignKey("sites.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("device_id", sa.Text(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        _metric("total_fuel_consumed"),
        _metric("total_fuel_topped_up"),
        _metric("fuel_consumed_percent"),
        _metric("fuel_topped_up_percent"),
        _metric("total_generator_runtime"),
        _metric("total_zesa_runtime"),
        _metric("total_offline_time"),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "site_id", "date", name="uq_cumulative_readings_site_date"
        ),
    )


def downgrade() -> None:
    """Drop the core tables in dependency order."""
    op.drop_table("cumulative_readings")
    op.drop_table("user_site_assignments")
    op.drop_table("sites")
    op.drop_index("idx_sensor_readings_device_time", table_name="sensor_readings")
    op.drop_table("sensor_readings")
