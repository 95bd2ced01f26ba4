"""
Fuel consumed and topped up over a day from level and volume samples.

The level (%) and volume (L) sequences are analysed independently: each
consecutive delta is either consumption (negative) or topping (positive),
and the two are never netted against each other. When the generator shows
no ON sample during the day, deltas below ``NOISE_THRESHOLD`` are treated
as sensor jitter and dropped:

* level: ``|delta| < 2.0`` percentage points;
* volume: ``|delta| / previous * 100 < 2.0``, and only when the previous
  reading is positive (otherwise the delta is never gated).

CHANGELOG:
- 2026-10-13: Gate volume deltas relative to the previous reading (STORY-004)
- 2026-10-12: Initial creation (STORY-004)

TODO:
- None
"""

import datetime
import logging
from collections.abc import Callable, Sequence
from itertools import pairwise

from sqlalchemy.ext.asyncio import AsyncSession

from fuelmon.db.store import (
    FUEL_LEVEL,
    FUEL_VOLUME,
    GENERATOR_STATE,
    count_on_samples,
    fetch_samples,
)
from fuelmon.services.dates import day_bounds
from fuelmon.services.records import FuelMetrics, SensorSample
from fuelmon.services.states import parse_float

logger = logging.getLogger(__name__)

NOISE_THRESHOLD = 2.0


def _is_level_noise(prev: float, change: float) -> bool:
    return abs(change) < NOISE_THRESHOLD


def _is_volume_noise(prev: float, change: float) -> bool:
    if prev <= 0:
        return False
    return abs(change) / prev * 100 < NOISE_THRESHOLD


def _accumulate(
    values: Sequence[float],
    generator_active: bool,
    is_noise: Callable[[float, float], bool],
) -> tuple[float, float]:
    """Sum consumed and topped amounts over consecutive deltas.

    Returns:
        tuple[float, float]: (consumed, topped), both non-negative.
    """
    consumed = 0.0
    topped = 0.0
    for prev, curr in pairwise(values):
        change = curr - prev
        if not generator_active and is_noise(prev, change):
            continue
        if change > 0:
            topped += change
        elif change < 0:
            consumed += -change
    return consumed, topped


def level_changes(levels: Sequence[float], generator_active: bool) -> tuple[float, float]:
    """Percentage consumed and topped from an ordered level sequence."""
    return _accumulate(levels, generator_active, _is_level_noise)


def volume_changes(volumes: Sequence[float], generator_active: bool) -> tuple[float, float]:
    """Litres consumed and topped from an ordered volume sequence."""
    return _accumulate(volumes, generator_active, _is_volume_noise)


def split_fuel_samples(samples: Sequence[SensorSample]) -> tuple[list[float], list[float]]:
    """Partition ordered samples into level and volume value sequences.

    Samples whose value is not a number are skipped.
    """
    levels: list[float] = []
    volumes: list[float] = []
    for sample in samples:
        value = parse_float(sample.value)
        if value is None:
            logger.debug(
                "Skipping malformed %s value %r for device %s",
                sample.sensor_name,
                sample.value,
                sample.device_id,
            )
            continue
        if sample.sensor_name == FUEL_LEVEL:
            levels.append(value)
        elif sample.sensor_name == FUEL_VOLUME:
            volumes.append(value)
    return levels, volumes


def analyze_fuel(samples: Sequence[SensorSample], generator_active: bool) -> FuelMetrics:
    """Compute fuel metrics from ordered level/volume samples of one day."""
    levels, volumes = split_fuel_samples(samples)
    consumed_pct, topped_pct = level_changes(levels, generator_active)
    consumed_l, topped_l = volume_changes(volumes, generator_active)
    return FuelMetrics(
        total_fuel_consumed=consumed_l,
        total_fuel_topped=topped_l,
        fuel_consumed_percent=consumed_pct,
        fuel_topped_percent=topped_pct,
    )


async def has_generator_activity(
    session: AsyncSession,
    device_id: str,
    start: datetime.datetime,
    end: datetime.datetime,
) -> bool:
    """Whether the generator reported any ON sample within the window."""
    return await count_on_samples(session, device_id, GENERATOR_STATE, start, end) > 0


async def calculate_fuel_changes(
    session: AsyncSession,
    device_id: str,
    day: datetime.date,
) -> FuelMetrics:
    """Fuel consumed and topped up for a device on one UTC day.

    Args:
        session: Async database session.
        device_id: Device to query.
        day: Calendar day, interpreted in UTC.

    Returns:
        FuelMetrics: Litres and percentages consumed and topped up.
    """
    start, end = day_bounds(day)
    generator_active = await has_generator_activity(session, device_id, start, end)
    samples = await fetch_samples(session, device_id, (FUEL_LEVEL, FUEL_VOLUME), start, end)
    return analyze_fuel(samples, generator_active)
