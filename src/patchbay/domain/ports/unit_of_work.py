"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from patchbay.domain.ports.persistence import (
        AllocationRepository,
        GraphRepository,
        PoolRepository,
        PrintTaskRepository,
        SequenceRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...  # the repo list itself should be immutable

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class IdentityRepositories(RepositoryCollection):
    """Counter, allocation table, pool ledger and print tasks share one transaction."""

    sequence: SequenceRepository
    allocations: AllocationRepository
    pool: PoolRepository
    print_tasks: PrintTaskRepository


@dataclass(slots=True)
class ConnectivityRepositories(RepositoryCollection):
    graph: GraphRepository


type IdentityUnitOfWork = UnitOfWork[IdentityRepositories]
type ConnectivityUnitOfWork = UnitOfWork[ConnectivityRepositories]
