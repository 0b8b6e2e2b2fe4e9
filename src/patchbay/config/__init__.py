"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_int, optional_env_str
from .errors import ConfigurationError
from .identity import IdentityConfig, get_identity_config
from .logging import configure_logging
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)
from .topology import TopologyConfig, get_topology_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "IdentityConfig",
    "StorageConfig",
    "TopologyConfig",
    "configure_logging",
    "get_database_config",
    "get_database_uri",
    "get_identity_config",
    "get_storage_config",
    "get_topology_config",
    "optional_env_int",
    "optional_env_str",
]
