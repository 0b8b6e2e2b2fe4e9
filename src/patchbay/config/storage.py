"""Where patchbay keeps its database and how it connects to it.

Identity writers serialise on the counter row. On SQLite that row lock is the
database write lock, so connections wait up to ``busy_timeout`` seconds for it
instead of failing with ``database is locked``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

from .env import optional_env_int

APP_DIR_NAME: Final[str] = "patchbay"
DEFAULT_DB_FILENAME: Final[str] = "patchbay.db"
DEFAULT_SQLITE_BUSY_TIMEOUT: Final[int] = 30


def _default_data_dir() -> Path:
    if os.name == "nt":
        root = os.getenv("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        root = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(root) / APP_DIR_NAME


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path = field(default_factory=_default_data_dir)
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def database_path(self, *, ensure: bool = True) -> Path:
        data_dir = self.resolve_data_dir()
        if ensure:
            data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / self.database_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    busy_timeout: int = DEFAULT_SQLITE_BUSY_TIMEOUT

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")

    def engine_options(self) -> dict[str, Any]:
        """Keyword arguments for ``sqlalchemy.create_engine``."""

        if self.is_sqlite:
            return {"connect_args": {"timeout": self.busy_timeout}}
        return {}


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("PATCHBAY_DATA_DIR")
    return StorageConfig(data_dir=Path(env_dir)) if env_dir else StorageConfig()


def get_database_config(
    *, uri: str | None = None, storage: StorageConfig | None = None
) -> DatabaseConfig:
    """Explicit ``uri`` first, then ``DATABASE_URI``, then a SQLite file in the data dir."""

    busy_timeout = optional_env_int(
        "PATCHBAY_SQLITE_BUSY_TIMEOUT", DEFAULT_SQLITE_BUSY_TIMEOUT, minimum=1
    )
    resolved = uri or os.getenv("DATABASE_URI") or (storage or get_storage_config()).database_uri()
    return DatabaseConfig(uri=resolved, busy_timeout=busy_timeout)


def get_database_uri() -> str:
    return get_database_config().uri
