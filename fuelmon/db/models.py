"""
SQLAlchemy ORM models for the fuel monitor database.

Defines raw sensor readings (append-only, written by the field devices),
sites and their user assignments, the persisted per-(site, date)
cumulative readings, daily closing snapshots, and admin dashboard
preferences.

CHANGELOG:
- 2026-10-13: Add DailyClosingReading and AdminPreference (STORY-008)
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Metric columns are stored at two decimal places.
METRIC_NUMERIC = Numeric(12, 2)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all fuel monitor ORM models."""

    pass


class SensorReading(Base):
    """Single raw sensor sample produced by a site's device.

    Values are stored as text because devices report booleans, numbers and
    occasional garbage through the same column.

    Attributes:
        id: Surrogate key.
        device_id: Identifier of the reporting device.
        sensor_name: Sensor name, e.g. ``fuel_sensor_level``.
        value: Raw value text (nullable).
        time: Sample timestamp in UTC.
    """

    __tablename__ = "sensor_readings"
    __table_args__ = (
        Index("idx_sensor_readings_device_time", "device_id", "sensor_name", "time"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    device_id: Mapped[str] = mapped_column(Text, nullable=False)
    sensor_name: Mapped[str] = mapped_column(Text, nullable=False)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    time: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


class Site(Base):
    """Monitored site with exactly one reporting device."""

    __tablename__ = "sites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    device_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true")
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        """Return string representation of the Site."""
        return f"Site(id={self.id!r}, name={self.name!r}, device_id={self.device_id!r})"


class UserSiteAssignment(Base):
    """Grants a non-admin user visibility of one site."""

    __tablename__ = "user_site_assignments"
    __table_args__ = (UniqueConstraint("user_id", "site_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    site_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class CumulativeReading(Base):
    """Persisted daily fuel and power aggregate for one site.

    At most one row exists per (site_id, date); writes go through an upsert
    on that key so re-running the aggregation refreshes the metrics and
    ``calculated_at`` while ``created_at`` keeps its first value.

    Attributes:
        total_fuel_consumed: Litres consumed.
        total_fuel_topped_up: Litres topped up.
        fuel_consumed_percent: Tank percentage consumed.
        fuel_topped_up_percent: Tank percentage topped up.
        total_generator_runtime: Generator ON hours.
        total_zesa_runtime: Grid ON hours.
        total_offline_time: max(0, 24 - generator - grid) hours.
    """

    __tablename__ = "cumulative_readings"
    __table_args__ = (
        UniqueConstraint("site_id", "date", name="uq_cumulative_readings_site_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    site_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False
    )
    device_id: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    total_fuel_consumed: Mapped[Decimal] = mapped_column(METRIC_NUMERIC, nullable=False)
    total_fuel_topped_up: Mapped[Decimal] = mapped_column(METRIC_NUMERIC, nullable=False)
    fuel_consumed_percent: Mapped[Decimal] = mapped_column(METRIC_NUMERIC, nullable=False)
    fuel_topped_up_percent: Mapped[Decimal] = mapped_column(METRIC_NUMERIC, nullable=False)
    total_generator_runtime: Mapped[Decimal] = mapped_column(METRIC_NUMERIC, nullable=False)
    total_zesa_runtime: Mapped[Decimal] = mapped_column(METRIC_NUMERIC, nullable=False)
    total_offline_time: Mapped[Decimal] = mapped_column(METRIC_NUMERIC, nullable=False)
    calculated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    def __repr__(self) -> str:
        """Return string representation of the CumulativeReading."""
        return (
            f"CumulativeReading(site_id={self.site_id!r}, date={self.date!r}, "
            f"total_fuel_consumed={self.total_fuel_consumed!r})"
        )


class DailyClosingReading(Base):
    """End-of-day fuel snapshot for a site, written by the closing job."""

    __tablename__ = "daily_closing_readings"
    __table_args__ = (
        Index("idx_daily_closing_site_latest", "site_id", "captured_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    site_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False
    )
    fuel_level: Mapped[str | None] = mapped_column(Text, nullable=True)
    fuel_volume: Mapped[str | None] = mapped_column(Text, nullable=True)
    temperature: Mapped[str | None] = mapped_column(Text, nullable=True)
    captured_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


class AdminPreference(Base):
    """Dashboard view mode chosen by an admin user."""

    __tablename__ = "admin_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    view_mode: Mapped[str] = mapped_column(
        Text, nullable=False, server_default="closing"
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
