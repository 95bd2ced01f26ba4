"""
Structured JSON logging for the API process.

CHANGELOG:
- 2026-10-17: Log the connection pool size (STORY-012)
- 2026-10-12: Initial creation (STORY-001)
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from datetime import UTC, datetime

from fuelmon.config import ApiSettings, connection_pool_size

logger = logging.getLogger(__name__)


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str | int = logging.INFO) -> None:
    """Configure structured JSON logging on the root logger.

    Replaces any existing root handlers with a single stderr handler.

    Args:
        level: Log level name or number for the root logger.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def masked(value: str | None) -> str:
    """Return a short non-reversible fingerprint of a secret for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


def log_config_summary(settings: ApiSettings) -> None:
    """Log a config summary at startup with secrets masked.

    Args:
        settings: The loaded API settings.
    """
    logger.info(
        "Fuel monitor API starting with config: "
        "batch_size=%s, aggregation_workers=%s, range_workers=%s, "
        "realtime_workers=%s, closing_workers=%s, site_timeout_s=%s, "
        "cache_ttl_s=%s, device_id_prefix=%r, cors_origins=%r, "
        "db_pool_size=%s, db_max_overflow=%s, database_url_masked=%s, "
        "jwt_secret_masked=%s",
        settings.batch_size,
        settings.aggregation_workers,
        settings.range_workers,
        settings.realtime_workers,
        settings.closing_workers,
        settings.site_timeout_s,
        settings.cache_ttl_s,
        settings.device_id_prefix,
        settings.cors_origins,
        connection_pool_size(settings),
        settings.db_max_overflow,
        masked(settings.database_url),
        masked(settings.jwt_secret),
    )
