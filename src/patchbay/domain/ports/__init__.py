"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    AllocationRepository,
    GraphRepository,
    PoolRepository,
    PrintTaskRepository,
    Repository,
    SequenceRepository,
)
from .unit_of_work import (
    ConnectivityRepositories,
    ConnectivityUnitOfWork,
    IdentityRepositories,
    IdentityUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AllocationRepository",
    "ConnectivityRepositories",
    "ConnectivityUnitOfWork",
    "GraphRepository",
    "IdentityRepositories",
    "IdentityUnitOfWork",
    "PoolRepository",
    "PrintTaskRepository",
    "Repository",
    "RepositoryCollection",
    "SequenceRepository",
    "UnitOfWork",
]
