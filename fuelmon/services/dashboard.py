"""
Dashboard of the latest fuel and power state per site.

Two read modes:

* ``realtime`` (admins with that stored preference): the latest value of
  each dashboard sensor per device, cached in Redis for ``cache_ttl_s``.
* ``closing`` (default): the latest daily closing snapshot per site plus
  live generator and grid states.

Both modes fan out through a fixed-size worker pool, one session per unit.
Sites without a fuel level are omitted.

CHANGELOG:
- 2026-10-14: Initial creation (STORY-008)

TODO:
- None
"""

import datetime
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fuelmon.cache.redis_client import get_cached_json, realtime_key, set_cached_json
from fuelmon.db.store import (
    ADMIN_ROLE,
    FUEL_LEVEL,
    FUEL_TEMP,
    FUEL_TEMPERATURE,
    FUEL_VOLUME,
    GENERATOR_STATE,
    ZESA_STATE,
    fetch_daily_closing,
    fetch_latest_states,
    fetch_latest_value,
    fetch_view_mode,
)
from fuelmon.services.pool import run_pool
from fuelmon.services.records import LatestReading, SiteRef
from fuelmon.services.states import is_on, parse_float

logger = logging.getLogger(__name__)

VIEW_CLOSING = "closing"
VIEW_REALTIME = "realtime"

LOW_FUEL_THRESHOLD = 25.0
RECENT_ACTIVITY_LIMIT = 10

UNKNOWN_STATE = "unknown"
DEFAULT_VOLUME = "0.00"


class AlertStatus(str, Enum):
    NORMAL = "normal"
    LOW_FUEL = "low_fuel"
    GENERATOR_OFF = "generator_off"


@dataclass(frozen=True)
class SiteWithReading:
    """A site, its latest reading, and the states derived from it."""

    site: SiteRef
    reading: LatestReading
    generator_online: bool
    zesa_online: bool
    fuel_level_percentage: float
    alert_status: AlertStatus


@dataclass(frozen=True)
class SystemStatus:
    sites_online: int = 0
    total_sites: int = 0
    low_fuel_alerts: int = 0
    generators_running: int = 0
    zesa_running: int = 0
    offline_sites: int = 0


@dataclass(frozen=True)
class ActivityItem:
    id: int
    site_id: int
    site_name: str
    event: str
    value: str
    timestamp: datetime.datetime
    status: str


@dataclass(frozen=True)
class Dashboard:
    sites: list[SiteWithReading]
    system_status: SystemStatus
    recent_activity: list[ActivityItem]
    view_mode: str


# ---------------------------------------------------------------------------
# Per-site evaluation
# ---------------------------------------------------------------------------


def clamp_fuel_level(raw: str) -> float:
    """Fuel level percentage clamped to [0, 100]; unparseable text is 0."""
    level = parse_float(raw)
    if level is None:
        return 0.0
    return min(100.0, max(0.0, level))


def evaluate_site(site: SiteRef, reading: LatestReading) -> SiteWithReading:
    """Derive online states and the alert status of one site."""
    level = clamp_fuel_level(reading.fuel_level)
    generator_online = is_on(reading.generator_state)

    if level <= LOW_FUEL_THRESHOLD:
        alert = AlertStatus.LOW_FUEL
    elif not generator_online and level > 0:
        alert = AlertStatus.GENERATOR_OFF
    else:
        alert = AlertStatus.NORMAL

    return SiteWithReading(
        site=site,
        reading=reading,
        generator_online=generator_online,
        zesa_online=is_on(reading.zesa_state),
        fuel_level_percentage=level,
        alert_status=alert,
    )


def system_status(entries: Sequence[SiteWithReading], total_sites: int) -> SystemStatus:
    """Counts across the dashboard; sites without data count as offline."""
    return SystemStatus(
        sites_online=len(entries),
        total_sites=total_sites,
        low_fuel_alerts=sum(1 for e in entries if e.alert_status is AlertStatus.LOW_FUEL),
        generators_running=sum(1 for e in entries if e.generator_online),
        zesa_running=sum(1 for e in entries if e.zesa_online),
        offline_sites=total_sites - len(entries),
    )


_ACTIVITY_LABELS: dict[AlertStatus, tuple[str, str]] = {
    AlertStatus.LOW_FUEL: ("Low Fuel Alert", "Low Fuel"),
    AlertStatus.GENERATOR_OFF: ("Generator Offline", "Offline"),
    AlertStatus.NORMAL: ("Normal Reading", "Normal"),
}


def recent_activity(
    entries: Sequence[SiteWithReading],
    limit: int = RECENT_ACTIVITY_LIMIT,
) -> list[ActivityItem]:
    """Activity items for the first ``limit`` sites, newest first."""
    items: list[ActivityItem] = []
    for index, entry in enumerate(entries[:limit]):
        event, status = _ACTIVITY_LABELS[entry.alert_status]
        volume = entry.reading.fuel_volume or "0"
        items.append(
            ActivityItem(
                id=index + 1,
                site_id=entry.site.id,
                site_name=entry.site.name,
                event=event,
                value=f"{entry.fuel_level_percentage:.1f}% ({volume}L)",
                timestamp=entry.reading.captured_at,
                status=status,
            )
        )
    items.sort(key=lambda item: item.timestamp, reverse=True)
    return items


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def _reading_to_dict(reading: LatestReading) -> dict:
    return {
        "site_id": reading.site_id,
        "device_id": reading.device_id,
        "fuel_level": reading.fuel_level,
        "fuel_volume": reading.fuel_volume,
        "temperature": reading.temperature,
        "generator_state": reading.generator_state,
        "zesa_state": reading.zesa_state,
        "captured_at": reading.captured_at.isoformat(),
    }


def _reading_from_dict(data: dict) -> LatestReading:
    return LatestReading(
        site_id=int(data["site_id"]),
        device_id=data["device_id"],
        fuel_level=data["fuel_level"],
        fuel_volume=data["fuel_volume"],
        temperature=data.get("temperature"),
        generator_state=data["generator_state"],
        zesa_state=data["zesa_state"],
        captured_at=datetime.datetime.fromisoformat(data["captured_at"]),
    )


def reading_from_states(
    site: SiteRef,
    states: dict[str, tuple[str, datetime.datetime]],
) -> LatestReading | None:
    """Build a reading from the latest sensor states; None without a fuel level."""
    level = states.get(FUEL_LEVEL)
    if level is None or not level[0]:
        return None

    temperature = states.get(FUEL_TEMP) or states.get(FUEL_TEMPERATURE)
    return LatestReading(
        site_id=site.id,
        device_id=site.device_id,
        fuel_level=level[0],
        fuel_volume=states[FUEL_VOLUME][0] if FUEL_VOLUME in states else DEFAULT_VOLUME,
        temperature=temperature[0] if temperature else None,
        generator_state=states[GENERATOR_STATE][0] if GENERATOR_STATE in states else UNKNOWN_STATE,
        zesa_state=states[ZESA_STATE][0] if ZESA_STATE in states else UNKNOWN_STATE,
        captured_at=level[1],
    )


async def read_realtime(
    session_factory: async_sessionmaker[AsyncSession],
    site: SiteRef,
    cache_ttl_s: int,
) -> LatestReading | None:
    """Latest sensor states of a site's device, through the Redis cache."""
    key = realtime_key(site.device_id)
    cached = await get_cached_json(key)
    if cached is not None:
        try:
            return _reading_from_dict(cached)
        except (KeyError, TypeError, ValueError):
            logger.warning("Ignoring unreadable cache entry for %s", key)

    async with session_factory() as session:
        states = await fetch_latest_states(session, site.device_id)

    reading = reading_from_states(site, states)
    if reading is not None:
        await set_cached_json(key, _reading_to_dict(reading), cache_ttl_s)
    return reading


async def read_daily_closing(
    session_factory: async_sessionmaker[AsyncSession],
    site: SiteRef,
) -> LatestReading | None:
    """Latest daily closing snapshot of a site plus live power states."""
    async with session_factory() as session:
        closing = await fetch_daily_closing(session, site.id)
        if closing is None:
            return None
        generator = await fetch_latest_value(session, site.device_id, GENERATOR_STATE)
        zesa = await fetch_latest_value(session, site.device_id, ZESA_STATE)

    return LatestReading(
        site_id=site.id,
        device_id=site.device_id,
        fuel_level=closing.fuel_level or "",
        fuel_volume=closing.fuel_volume or DEFAULT_VOLUME,
        temperature=closing.temperature,
        generator_state=generator or UNKNOWN_STATE,
        zesa_state=zesa or UNKNOWN_STATE,
        captured_at=closing.captured_at,
    )


async def resolve_view_mode(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: int,
    role: str,
) -> str:
    """Dashboard view mode: an admin's stored preference, else ``closing``."""
    if role != ADMIN_ROLE:
        return VIEW_CLOSING
    try:
        async with session_factory() as session:
            mode = await fetch_view_mode(session, user_id)
    except Exception:
        logger.warning("Failed to read view mode for user %d", user_id, exc_info=True)
        return VIEW_CLOSING
    return mode or VIEW_CLOSING


async def build_dashboard(
    session_factory: async_sessionmaker[AsyncSession],
    sites: Sequence[SiteRef],
    view_mode: str,
    role: str,
    *,
    realtime_workers: int,
    closing_workers: int,
    cache_ttl_s: int,
) -> Dashboard:
    """Read the latest state of every site and summarise it.

    Args:
        session_factory: Factory used to open one session per unit.
        sites: Sites visible to the user.
        view_mode: ``realtime`` or ``closing``.
        role: Requesting user's role; realtime reads are admin-only.
        realtime_workers: Pool size for realtime reads.
        closing_workers: Pool size for daily closing reads.
        cache_ttl_s: TTL of cached realtime readings.

    Returns:
        Dashboard: Sites sorted by fuel level desc, status and activity.
    """
    if not sites:
        return Dashboard(
            sites=[], system_status=SystemStatus(), recent_activity=[], view_mode=view_mode
        )

    started = time.monotonic()
    realtime = view_mode == VIEW_REALTIME and role == ADMIN_ROLE

    async def _unit(site: SiteRef) -> SiteWithReading | None:
        if realtime:
            reading = await read_realtime(session_factory, site, cache_ttl_s)
        else:
            reading = await read_daily_closing(session_factory, site)
        if reading is None or not reading.fuel_level:
            return None
        return evaluate_site(site, reading)

    entries = await run_pool(
        sites, _unit, realtime_workers if realtime else closing_workers
    )
    entries.sort(key=lambda e: e.fuel_level_percentage, reverse=True)

    logger.info(
        "Dashboard readings completed: mode=%s sites=%d/%d took=%.2fs",
        view_mode,
        len(entries),
        len(sites),
        time.monotonic() - started,
    )
    return Dashboard(
        sites=entries,
        system_status=system_status(entries, len(sites)),
        recent_activity=recent_activity(entries),
        view_mode=view_mode,
    )
