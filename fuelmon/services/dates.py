"""
Calendar-day parsing and windows for the aggregation requests.

Requests carry dates as ``DD/MM/YYYY`` or ``YYYY-MM-DD``. Days are always
interpreted in UTC.

CHANGELOG:
- 2026-10-17: Require zero-padded fields in both layouts (STORY-012)
- 2026-10-12: Initial creation (STORY-004)
"""

import datetime


class InvalidDateError(ValueError):
    """Raised when a date string matches neither accepted format."""


# Inclusive end of a UTC day at microsecond resolution.
_END_OF_DAY = datetime.time(23, 59, 59, 999999, tzinfo=datetime.UTC)
_START_OF_DAY = datetime.time(0, 0, 0, tzinfo=datetime.UTC)


def parse_date(value: str | None, today: datetime.date | None = None) -> datetime.date:
    """Parse a request date.

    Args:
        value: ``DD/MM/YYYY`` or ``YYYY-MM-DD``. Empty or None means today.
        today: Override for the current day (used by tests).

    Returns:
        datetime.date: The parsed calendar day.

    Raises:
        InvalidDateError: If the value matches neither format.
    """
    if not value:
        return today or datetime.datetime.now(datetime.UTC).date()

    value = value.strip()
    # strptime accepts unpadded fields, so the layout is checked first.
    if len(value) == 10 and value[2] == "/" and value[5] == "/":
        fmt = "%d/%m/%Y"
    elif len(value) == 10 and value[4] == "-" and value[7] == "-":
        fmt = "%Y-%m-%d"
    else:
        raise InvalidDateError(f"Invalid date '{value}'")
    try:
        return datetime.datetime.strptime(value, fmt).date()
    except ValueError as exc:
        raise InvalidDateError(f"Invalid date '{value}'") from exc


def day_bounds(day: datetime.date) -> tuple[datetime.datetime, datetime.datetime]:
    """Return the inclusive UTC window ``[00:00:00, 23:59:59.999999]`` of a day."""
    return (
        datetime.datetime.combine(day, _START_OF_DAY),
        datetime.datetime.combine(day, _END_OF_DAY),
    )


def days_included(start: datetime.date, end: datetime.date) -> int:
    """Inclusive number of calendar days from start to end (1 when equal)."""
    if start == end:
        return 1
    return (end - start).days + 1
