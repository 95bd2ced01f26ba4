"""
Alembic environment for the fuel monitor schema.

Migrations run against the same DATABASE_URL as the API, through an async
engine with no connection pooling. ``sensor_readings`` is written by the
field devices and may carry extra columns or partitions that autogenerate
must not try to reconcile, so it is compared by name only.

CHANGELOG:
- 2026-10-13: Skip type comparison for device-owned sensor_readings (STORY-008)
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from fuelmon.db.models import Base
from fuelmon.db.session import _get_database_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

DEVICE_OWNED_TABLES = frozenset({"sensor_readings"})


def _compare_type(context, inspected_column, metadata_column, inspected_type, metadata_type):
    """Type comparison hook; device-owned tables are never altered."""
    if metadata_column.table.name in DEVICE_OWNED_TABLES:
        return False
    return None


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=_compare_type,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit migration SQL to the script output without a database."""
    _configure(
        url=_get_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Apply migrations through an unpooled async engine."""
    engine = create_async_engine(_get_database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_with_connection)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
