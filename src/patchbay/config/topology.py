"""Topology expansion defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_int
from .errors import ConfigurationError

DEFAULT_TOPOLOGY_DEPTH = 3
MAX_TOPOLOGY_DEPTH = 10


@dataclass(frozen=True, slots=True)
class TopologyConfig:
    default_depth: int = DEFAULT_TOPOLOGY_DEPTH
    max_depth: int = MAX_TOPOLOGY_DEPTH


def get_topology_config() -> TopologyConfig:
    default_depth = optional_env_int("PATCHBAY_TOPOLOGY_DEFAULT_DEPTH", DEFAULT_TOPOLOGY_DEPTH)
    max_depth = optional_env_int("PATCHBAY_TOPOLOGY_MAX_DEPTH", MAX_TOPOLOGY_DEPTH)
    if default_depth > max_depth:
        raise ConfigurationError(
            f"Default topology depth {default_depth} exceeds maximum {max_depth}",
            setting="PATCHBAY_TOPOLOGY_DEFAULT_DEPTH",
        )
    return TopologyConfig(default_depth=default_depth, max_depth=max_depth)
