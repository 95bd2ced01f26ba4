"""
Generator and grid runtime from binary state samples.

Runtime is the integral of a step function reconstructed from discrete
samples: each sample's state holds until the next sample, and an ON state
with no later sample holds until the window end. A window with no samples
contributes zero hours. Short ON pulses that begin and end between two
samples are not observed.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-004)

TODO:
- None
"""

import datetime
import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from fuelmon.db.store import GENERATOR_STATE, ZESA_STATE, fetch_samples
from fuelmon.services.dates import day_bounds
from fuelmon.services.records import PowerMetrics, SensorSample
from fuelmon.services.states import is_on

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24.0


def integrate_on_hours(
    samples: Iterable[SensorSample],
    window_end: datetime.datetime,
) -> float:
    """Total hours a state signal was ON, given samples ordered by time.

    Args:
        samples: State samples ordered ascending by timestamp.
        window_end: Inclusive end of the window; a trailing ON state is
            extended up to it.

    Returns:
        float: ON duration in hours.
    """
    total = datetime.timedelta(0)
    last_time: datetime.datetime | None = None
    last_on = False

    for sample in samples:
        if last_time is not None and last_on:
            total += sample.time - last_time
        last_time = sample.time
        last_on = is_on(sample.value)

    if last_time is not None and last_on and last_time < window_end:
        total += window_end - last_time

    return total.total_seconds() / 3600


def offline_hours(generator_hours: float, zesa_hours: float) -> float:
    """Hours with neither source reported ON, clamped at zero.

    Generator and grid runtimes may overlap, so this is an approximation
    and not a partition of the day.
    """
    return max(0.0, HOURS_PER_DAY - (generator_hours + zesa_hours))


async def calculate_state_runtime(
    session: AsyncSession,
    device_id: str,
    sensor_name: str,
    start: datetime.datetime,
    end: datetime.datetime,
) -> float:
    """ON hours of one state sensor within ``[start, end]``.

    Args:
        session: Async database session.
        device_id: Device to query.
        sensor_name: State sensor, e.g. ``generator_state``.
        start: Inclusive window start.
        end: Inclusive window end.

    Returns:
        float: ON duration in hours.
    """
    samples = await fetch_samples(session, device_id, (sensor_name,), start, end)
    return integrate_on_hours(samples, end)


async def calculate_power_runtimes(
    session: AsyncSession,
    device_id: str,
    day: datetime.date,
) -> PowerMetrics:
    """Generator, grid and offline hours for a device on one UTC day."""
    start, end = day_bounds(day)

    generator_hours = await calculate_state_runtime(
        session, device_id, GENERATOR_STATE, start, end
    )
    zesa_hours = await calculate_state_runtime(session, device_id, ZESA_STATE, start, end)

    logger.debug(
        "Power runtimes: device_id=%s day=%s generator=%.3fh zesa=%.3fh",
        device_id,
        day,
        generator_hours,
        zesa_hours,
    )

    return PowerMetrics(
        total_generator_runtime=generator_hours,
        total_zesa_runtime=zesa_hours,
        total_offline_time=offline_hours(generator_hours, zesa_hours),
    )
