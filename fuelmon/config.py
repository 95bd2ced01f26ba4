"""
API configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
All connection strings and secrets come from environment variables or .env
files. Concurrency limits for the aggregation and dashboard paths are tuning
parameters and may be changed per deployment.

CHANGELOG:
- 2026-10-17: Add CorsSettings and connection pool sizing (STORY-012)
- 2026-10-14: Add SITE_TIMEOUT_S per-site deadline (STORY-006)
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class CorsSettings(BaseSettings):
    """Settings needed before startup, when the middleware stack is built.

    Attributes:
        cors_origins: Comma-separated list of allowed CORS origins.
    """

    cors_origins: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


class ApiSettings(CorsSettings):
    """Fuel monitor API configuration.

    Attributes:
        database_url: SQLAlchemy async URL for PostgreSQL (asyncpg driver).
        redis_url: Redis URL for the realtime dashboard cache.
        jwt_secret: HMAC secret used to validate identity tokens.
        jwt_algorithm: Token signing algorithm.
        cache_ttl_s: TTL in seconds of cached realtime readings.
        batch_size: Sites per batch in the single-day aggregation.
        aggregation_workers: Batches processed concurrently in the single-day
            aggregation.
        range_workers: Worker pool size for the range aggregation.
        realtime_workers: Worker pool size for realtime dashboard reads.
        closing_workers: Worker pool size for daily-closing dashboard reads.
        site_timeout_s: Optional per-site deadline in seconds for the
            single-day aggregation. None or 0 disables the deadline.
        device_id_prefix: Optional device-id prefix filter for dashboard sites.
        cors_origins: Inherited from CorsSettings.
        db_pool_size: Database connection pool size. When unset it is derived
            from the concurrency limits, see connection_pool_size().
        db_max_overflow: Connections allowed beyond the pool size.
        log_level: Root log level.
    """

    database_url: str
    redis_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    cache_ttl_s: int = 5
    batch_size: int = 10
    aggregation_workers: int = 10
    range_workers: int = 15
    realtime_workers: int = 15
    closing_workers: int = 12
    site_timeout_s: float | None = None
    device_id_prefix: str = ""
    db_pool_size: int | None = None
    db_max_overflow: int = 10
    log_level: str = "INFO"

    @field_validator(
        "batch_size",
        "aggregation_workers",
        "range_workers",
        "realtime_workers",
        "closing_workers",
    )
    @classmethod
    def pool_sizes_must_be_positive(cls, v: int) -> int:
        """Validate batch and worker pool sizes are at least 1."""
        if v < 1:
            raise ValueError("batch size and worker counts must be >= 1")
        return v

    @field_validator("cache_ttl_s")
    @classmethod
    def cache_ttl_must_be_positive(cls, v: int) -> int:
        """Validate cache TTL is at least one second."""
        if v < 1:
            raise ValueError("CACHE_TTL_S must be >= 1")
        return v

    @field_validator("site_timeout_s")
    @classmethod
    def site_timeout_must_be_non_negative(cls, v: float | None) -> float | None:
        """Validate the per-site deadline; 0 is treated as disabled."""
        if v is None:
            return None
        if v < 0:
            raise ValueError("SITE_TIMEOUT_S must be >= 0")
        return v or None

    @field_validator("db_pool_size")
    @classmethod
    def db_pool_size_must_be_positive(cls, v: int | None) -> int | None:
        """Validate an explicit pool size is at least 1."""
        if v is not None and v < 1:
            raise ValueError("DB_POOL_SIZE must be >= 1")
        return v

    @field_validator("db_max_overflow")
    @classmethod
    def db_max_overflow_must_be_non_negative(cls, v: int) -> int:
        """Validate the pool overflow is not negative."""
        if v < 0:
            raise ValueError("DB_MAX_OVERFLOW must be >= 0")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_upper(cls, v: str) -> str:
        """Normalise the log level name to upper case."""
        return v.strip().upper() or "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def parse_cors_origins(raw: str) -> list[str]:
    """Split a comma-separated CORS origin list, dropping empty entries."""
    return [o.strip() for o in raw.split(",") if o.strip()]


def connection_pool_size(settings: ApiSettings) -> int:
    """Return the database pool size for the configured concurrency.

    The single-day aggregation holds two sessions per site (fuel and power
    queries run concurrently) across ``aggregation_workers`` batches of
    ``batch_size`` sites. The pool covers that peak or the largest worker
    pool, whichever is bigger, unless DB_POOL_SIZE sets it explicitly.

    Args:
        settings: The loaded API settings.

    Returns:
        int: Number of pooled connections.
    """
    if settings.db_pool_size is not None:
        return settings.db_pool_size
    return max(
        2 * settings.aggregation_workers * settings.batch_size,
        settings.range_workers,
        settings.realtime_workers,
        settings.closing_workers,
    )
