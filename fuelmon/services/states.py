"""
Parsing of raw sensor value text.

Devices report binary states as "1", "1.0", "on" or "true" depending on
firmware, and numbers as free text. All ON/OFF decisions go through
``is_on`` and the same token set is pushed into SQL by the store, so the
integrator, the generator-activity check and the dashboard agree on what
ON means.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-003)
"""

import math

# Accepted ON tokens after strip() and lower(). Anything else is OFF.
ON_TOKENS: frozenset[str] = frozenset({"1", "1.0", "on", "true"})


def is_on(value: str | None) -> bool:
    """Return True if a raw state value represents ON.

    Args:
        value: Raw value text; None and malformed values are OFF.

    Returns:
        bool: Whether the value is one of ``ON_TOKENS``.
    """
    if value is None:
        return False
    return value.strip().lower() in ON_TOKENS


def parse_float(value: str | None) -> float | None:
    """Parse a raw numeric value, returning None when it is malformed."""
    if value is None:
        return None
    try:
        parsed = float(value.strip())
    except ValueError:
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return parsed
