"""Schema migrations for the patchbay identity and graph tables.

Revisions are bundled next to this module. A source checkout may point Alembic
elsewhere through ``[tool.alembic]`` in ``pyproject.toml``; installed copies have
no such file and always use the bundled scripts.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from patchbay.config.storage import get_database_uri

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
PROJECT_ROOT: Final[Path] = MIGRATIONS_PATH.parents[4]
PYPROJECT_PATH: Final[Path] = PROJECT_ROOT / "pyproject.toml"
HEAD: Final[str] = "head"


def _checkout_settings() -> dict[str, str]:
    if not PYPROJECT_PATH.is_file():
        return {}
    with PYPROJECT_PATH.open("rb") as handle:
        section = tomllib.load(handle).get("tool", {}).get("alembic", {})
    return {str(key): str(value) for key, value in section.items()}


def _script_location(configured: str | None) -> Path:
    if configured is None:
        return MIGRATIONS_PATH
    path = Path(configured)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path if path.is_dir() else MIGRATIONS_PATH


def alembic_config(database_uri: str | None = None) -> Config:
    """Build an in-memory Alembic config; nothing is read from ``alembic.ini``."""

    settings = _checkout_settings()
    config = Config()
    for key, value in settings.items():
        if key != "script_location":
            config.set_main_option(key, value)
    script_location = _script_location(settings.get("script_location"))
    config.set_main_option("script_location", str(script_location))
    if database_uri is not None:
        # configparser interpolation would eat a literal % in passwords
        config.set_main_option("sqlalchemy.url", database_uri.replace("%", "%%"))
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Migrate ``engine`` (or the database at ``database_uri``) to the latest revision."""

    if engine is None:
        command.upgrade(alembic_config(database_uri or get_database_uri()), HEAD)
        return
    config = alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, HEAD)
