"""
Redis client for the realtime dashboard cache.

Provides helper functions for creating Redis connections and reading and
writing JSON cache entries. Cache access is best-effort: connection
failures are logged but do not propagate exceptions, and callers fall back
to the database.

The Redis URL is set once at startup from the loaded settings via
init_redis(); the REDIS_URL environment variable is the fallback.

CHANGELOG:
- 2026-10-17: Take the Redis URL from settings via init_redis (STORY-012)
- 2026-10-14: Add JSON get/set helpers for realtime readings (STORY-008)
- 2026-10-12: Initial creation (STORY-001)
"""

import json
import logging
import os
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)

# Module-level URL, set via init_redis() at application startup.
redis_url: str | None = None


def init_redis(url: str | None) -> None:
    """Set the module-level Redis URL used by get_redis().

    Args:
        url: Redis URL from the loaded settings. None clears it.
    """
    global redis_url  # noqa: PLW0603
    redis_url = url or None


def _get_redis_url() -> str:
    """Return the configured Redis URL, falling back to REDIS_URL.

    Returns:
        str: The Redis connection URL.

    Raises:
        RuntimeError: If no URL was configured and REDIS_URL is not set.
    """
    url = redis_url or os.environ.get("REDIS_URL")
    if not url:
        raise RuntimeError("REDIS_URL environment variable is required")
    return url


async def get_redis() -> redis.Redis:
    """Create and return an async Redis client for the configured URL.

    Returns:
        redis.Redis: Async Redis client.
    """
    return redis.from_url(_get_redis_url())


def realtime_key(device_id: str) -> str:
    """Cache key of a device's latest readings."""
    return f"realtime:{device_id}"


async def get_cached_json(key: str) -> Any | None:
    """Return the decoded JSON value stored at ``key``, or None.

    None is returned on a cache miss and on any Redis or decode failure.
    """
    try:
        client = await get_redis()
        try:
            cached = await client.get(key)
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Redis read failed for key %s", key, exc_info=True)
        return None

    if cached is None:
        return None
    try:
        return json.loads(cached)
    except ValueError:
        logger.warning("Discarding malformed cache entry for key %s", key)
        return None


async def set_cached_json(key: str, value: Any, ttl_s: int) -> None:
    """Store ``value`` as JSON at ``key`` with a TTL. Best-effort."""
    try:
        client = await get_redis()
        try:
            await client.set(key, json.dumps(value), ex=ttl_s)
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Redis write failed for key %s", key, exc_info=True)
