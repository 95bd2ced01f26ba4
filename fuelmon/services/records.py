"""
Plain data records passed between the store and the aggregation services.

Records are frozen dataclasses so that results produced by concurrent
units can be merged and sorted without defensive copies.

CHANGELOG:
- 2026-10-13: Add range and dashboard records (STORY-007)
- 2026-10-12: Initial creation (STORY-003)
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum


class SiteStatus(str, Enum):
    """Outcome of one site's single-day calculation."""

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class SensorSample:
    """One raw sample as read from ``sensor_readings``.

    Attributes:
        device_id: Reporting device.
        sensor_name: Sensor name.
        value: Raw value text, never None (NULL rows are filtered out).
        time: Sample timestamp.
    """

    device_id: str
    sensor_name: str
    value: str
    time: datetime.datetime


@dataclass(frozen=True)
class SiteRef:
    """A site as seen by the aggregation core."""

    id: int
    name: str
    device_id: str
    location: str = ""
    is_active: bool = True
    created_at: datetime.datetime | None = None


@dataclass(frozen=True)
class FuelMetrics:
    """Fuel consumed and topped up over one day.

    Attributes:
        total_fuel_consumed: Litres consumed (volume sequence).
        total_fuel_topped: Litres topped up (volume sequence).
        fuel_consumed_percent: Percentage consumed (level sequence).
        fuel_topped_percent: Percentage topped up (level sequence).
    """

    total_fuel_consumed: float = 0.0
    total_fuel_topped: float = 0.0
    fuel_consumed_percent: float = 0.0
    fuel_topped_percent: float = 0.0


@dataclass(frozen=True)
class PowerMetrics:
    """Generator and grid runtime over one day, in hours.

    Generator and grid runtimes may overlap, so ``total_offline_time`` is a
    clamped approximation rather than an exact complement of the day.
    """

    total_generator_runtime: float = 0.0
    total_zesa_runtime: float = 0.0
    total_offline_time: float = 0.0


@dataclass(frozen=True)
class UpsertOutcome:
    """Result of writing one cumulative reading.

    Attributes:
        reading_id: Primary key of the written row.
        created: True if the row was inserted, False if an existing row
            was updated.
        calculated_at: Calculation timestamp stored on the row.
    """

    reading_id: int
    created: bool
    calculated_at: datetime.datetime


@dataclass(frozen=True)
class SiteResult:
    """One site's entry in a single-day aggregation response."""

    site_id: int
    site_name: str
    device_id: str
    status: SiteStatus
    fuel_consumed: float = 0.0
    fuel_topped: float = 0.0
    fuel_consumed_percent: float = 0.0
    fuel_topped_percent: float = 0.0
    generator_hours: float = 0.0
    zesa_hours: float = 0.0
    offline_hours: float = 0.0
    error: str | None = None
    calculated_at: datetime.datetime | None = None


@dataclass(frozen=True)
class RangeTotals:
    """SQL-level sums of persisted cumulative readings for one site."""

    reading_days: int
    total_fuel_consumed: float
    total_fuel_topped: float
    total_generator_hours: float
    total_zesa_hours: float
    total_offline_hours: float
    first_date: datetime.date | None
    last_date: datetime.date | None


@dataclass(frozen=True)
class SiteRangeResult:
    """One site's entry in a range aggregation response."""

    site_id: int
    site_name: str
    device_id: str
    total_fuel_consumed: float
    total_fuel_topped: float
    total_generator_hours: float
    total_zesa_hours: float
    total_offline_hours: float
    reading_days: int
    first_date: datetime.date
    last_date: datetime.date


@dataclass(frozen=True)
class LatestReading:
    """Latest fuel and power state for a site, used by the dashboard.

    Attributes:
        site_id: Site primary key (0 when read by device only).
        device_id: Reporting device.
        fuel_level: Raw fuel level text ("" if unknown).
        fuel_volume: Raw fuel volume text.
        temperature: Raw temperature text, if reported.
        generator_state: Raw generator state text or "unknown".
        zesa_state: Raw grid state text or "unknown".
        captured_at: Timestamp of the fuel reading.
    """

    site_id: int
    device_id: str
    fuel_level: str
    fuel_volume: str
    temperature: str | None
    generator_state: str
    zesa_state: str
    captured_at: datetime.datetime
