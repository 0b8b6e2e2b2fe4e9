"""Alembic environment for the patchbay tables.

``upgrade_head`` hands in an open connection; the ``alembic`` command line falls
back to ``sqlalchemy.url`` or the configured storage.
"""

from __future__ import annotations

from logging.config import fileConfig
from pathlib import Path
from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool

from patchbay.adapters.sqlalchemy.mappings import mapper_registry, start_mappers
from patchbay.config.storage import get_database_config

config = context.config

if config.config_file_name is not None and Path(config.config_file_name).suffix == ".ini":
    fileConfig(config.config_file_name)

start_mappers()

MIGRATION_OPTIONS: dict[str, Any] = {
    "target_metadata": mapper_registry.metadata,
    "render_as_batch": True,
    "compare_type": True,
    "compare_server_default": True,
}


def _run(**options: Any) -> None:
    context.configure(**options, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    database = get_database_config(uri=config.get_main_option("sqlalchemy.url"))
    _run(url=database.uri, literal_binds=True)


def run_migrations_online() -> None:
    connection = config.attributes.get("connection")
    if connection is not None:
        _run(connection=connection)
        return

    database = get_database_config(uri=config.get_main_option("sqlalchemy.url"))
    engine = create_engine(database.uri, poolclass=pool.NullPool, **database.engine_options())
    try:
        with engine.connect() as owned_connection:
            _run(connection=owned_connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
