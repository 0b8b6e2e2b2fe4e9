"""SQLAlchemy adapter package for patchbay."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAllocationRepository,
    SqlAlchemyGraphRepository,
    SqlAlchemyPoolRepository,
    SqlAlchemyPrintTaskRepository,
    SqlAlchemySequenceRepository,
)
from .unit_of_work import (
    SqlAlchemyConnectivityUnitOfWork,
    SqlAlchemyIdentityUnitOfWork,
    StartupError,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAllocationRepository",
    "SqlAlchemyConnectivityUnitOfWork",
    "SqlAlchemyGraphRepository",
    "SqlAlchemyIdentityUnitOfWork",
    "SqlAlchemyPoolRepository",
    "SqlAlchemyPrintTaskRepository",
    "SqlAlchemySequenceRepository",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
