"""Ports for persisting identity records and the connectivity graph."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from patchbay.domain.model import (
        AllocationRecord,
        CableAttributes,
        CableHyperedge,
        Incidence,
        PanelNode,
        PoolRecord,
        PoolStatus,
        PortNode,
        PrintTask,
        ShortId,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class SequenceRepository(Protocol):
    """The single global counter row.

    Every method takes the counter's write lock, so calling any of them first in
    a transaction serialises it against all other allocators.
    """

    def reserve(self, count: int = 1) -> ShortId:
        """Advance the counter by ``count`` and return the first value of the block."""
        ...

    def claim(self, short_id: ShortId) -> None:
        """Lock the counter and make sure it is past ``short_id``."""
        ...

    def lock(self) -> None:
        """Take the counter's write lock without changing its value."""
        ...

    def current_value(self) -> int: ...


@runtime_checkable
class AllocationRepository(Repository["AllocationRecord"], Protocol):
    def get(self, short_id: ShortId) -> AllocationRecord | None: ...

    def get_many(self, short_ids: Iterable[ShortId]) -> dict[ShortId, AllocationRecord]: ...

    def remove(self, short_id: ShortId) -> bool: ...


@runtime_checkable
class PoolRepository(Repository["PoolRecord"], Protocol):
    def get(self, short_id: ShortId) -> PoolRecord | None: ...

    def get_many(self, short_ids: Iterable[ShortId]) -> dict[ShortId, PoolRecord]: ...

    def query(
        self,
        *,
        status: PoolStatus | None = None,
        batch_no: str | None = None,
        print_task_id: UUID | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> Sequence[PoolRecord]: ...

    def count(
        self,
        *,
        status: PoolStatus | None = None,
        batch_no: str | None = None,
        print_task_id: UUID | None = None,
    ) -> int: ...

    def count_by_status(self) -> dict[PoolStatus, int]: ...


@runtime_checkable
class PrintTaskRepository(Repository["PrintTask"], Protocol):
    def get(self, task_id: UUID) -> PrintTask | None: ...

    def query(self, *, offset: int = 0, limit: int | None = None) -> Sequence[PrintTask]: ...

    def count(self) -> int: ...


@runtime_checkable
class GraphRepository(Protocol):
    """Node and hyperedge storage for the connectivity graph."""

    def upsert_panel(self, panel: PanelNode) -> None: ...

    def upsert_port(self, port: PortNode) -> None: ...

    def upsert_cable(self, cable_id: UUID, attributes: CableAttributes) -> None: ...

    def get_cable(self, cable_id: UUID) -> CableHyperedge | None: ...

    def get_cables(self, cable_ids: Iterable[UUID]) -> dict[UUID, CableHyperedge]: ...

    def remove_cable(self, cable_id: UUID) -> bool:
        """Delete the hyperedge and all of its incidences."""
        ...

    def get_ports(self, port_ids: Iterable[UUID]) -> dict[UUID, PortNode]: ...

    def get_panels(self, panel_ids: Iterable[UUID]) -> dict[UUID, PanelNode]: ...

    def ports_for_panels(self, panel_ids: Iterable[UUID]) -> Sequence[PortNode]: ...

    def remove_port(self, port_id: UUID) -> None: ...

    def remove_panel(self, panel_id: UUID) -> None: ...

    def add_incidence(self, incidence: Incidence) -> None: ...

    def remove_incidence(self, port_id: UUID) -> None: ...

    def incidences_for_ports(self, port_ids: Iterable[UUID]) -> Sequence[Incidence]: ...

    def incidences_for_cables(self, cable_ids: Iterable[UUID]) -> Sequence[Incidence]: ...

    def incidence_for_endpoint(self, endpoint_id: UUID) -> Incidence | None: ...
