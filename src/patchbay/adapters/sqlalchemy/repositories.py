"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import case, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError

from patchbay.adapters.sqlalchemy.mappings import (
    SEQUENCE_ROW_ID,
    graph_cable_table,
    graph_incidence_table,
    graph_panel_table,
    graph_port_table,
    print_task_table,
    short_id_allocation_table,
    short_id_pool_table,
    short_id_sequence_table,
)
from patchbay.domain.errors import (
    PortAlreadyConnectedError,
    SequenceNotInitialisedError,
    ShortIdConflictError,
)
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
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from sqlalchemy import ColumnElement, Row, Table
    from sqlalchemy.orm import Session

    from patchbay.domain.model import ShortId


class SqlAlchemySequenceRepository:
    """The counter row; each statement here takes its write lock."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def reserve(self, count: int = 1) -> ShortId:
        if count <= 0:
            raise ValueError("count must be positive")
        self._update(short_id_sequence_table.c.next_value + count)
        return self.current_value() - count

    def claim(self, short_id: ShortId) -> None:
        column = short_id_sequence_table.c.next_value
        self._update(case((column <= short_id, short_id + 1), else_=column))

    def lock(self) -> None:
        self._update(short_id_sequence_table.c.next_value)

    def current_value(self) -> int:
        stmt = select(short_id_sequence_table.c.next_value).where(
            short_id_sequence_table.c.id == SEQUENCE_ROW_ID
        )
        value = self.session.execute(stmt).scalar_one_or_none()
        if value is None:
            raise SequenceNotInitialisedError("shortID counter row is missing")
        return value

    def _update(self, value: Any) -> None:
        stmt = (
            update(short_id_sequence_table)
            .where(short_id_sequence_table.c.id == SEQUENCE_ROW_ID)
            .values(next_value=value)
        )
        result = self.session.execute(stmt)
        if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
            raise SequenceNotInitialisedError("shortID counter row is missing")


class SqlAlchemyAllocationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: AllocationRecord) -> None:
        self.session.add(entity)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ShortIdConflictError(entity.short_id) from exc

    def get(self, short_id: ShortId) -> AllocationRecord | None:
        return self.session.get(AllocationRecord, short_id)

    def get_many(self, short_ids: Iterable[ShortId]) -> dict[ShortId, AllocationRecord]:
        wanted = set(short_ids)
        if not wanted:
            return {}
        stmt = select(AllocationRecord).where(short_id_allocation_table.c.short_id.in_(wanted))
        return {record.short_id: record for record in self.session.scalars(stmt)}

    def remove(self, short_id: ShortId) -> bool:
        record = self.get(short_id)
        if record is None:
            return False
        self.session.delete(record)
        self.session.flush()
        return True


class SqlAlchemyPoolRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: PoolRecord) -> None:
        self.session.add(entity)

    def get(self, short_id: ShortId) -> PoolRecord | None:
        return self.session.get(PoolRecord, short_id)

    def get_many(self, short_ids: Iterable[ShortId]) -> dict[ShortId, PoolRecord]:
        wanted = set(short_ids)
        if not wanted:
            return {}
        stmt = select(PoolRecord).where(short_id_pool_table.c.short_id.in_(wanted))
        return {record.short_id: record for record in self.session.scalars(stmt)}

    def query(
        self,
        *,
        status: PoolStatus | None = None,
        batch_no: str | None = None,
        print_task_id: UUID | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> Sequence[PoolRecord]:
        stmt = (
            select(PoolRecord)
            .where(*self._filters(status, batch_no, print_task_id))
            .order_by(short_id_pool_table.c.short_id)
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.session.scalars(stmt).all()

    def count(
        self,
        *,
        status: PoolStatus | None = None,
        batch_no: str | None = None,
        print_task_id: UUID | None = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(short_id_pool_table)
            .where(*self._filters(status, batch_no, print_task_id))
        )
        return self.session.execute(stmt).scalar_one()

    def count_by_status(self) -> dict[PoolStatus, int]:
        stmt = select(short_id_pool_table.c.status, func.count()).group_by(
            short_id_pool_table.c.status
        )
        return {status: total for status, total in self.session.execute(stmt).tuples()}

    @staticmethod
    def _filters(
        status: PoolStatus | None,
        batch_no: str | None,
        print_task_id: UUID | None,
    ) -> list[ColumnElement[bool]]:
        filters: list[ColumnElement[bool]] = []
        if status is not None:
            filters.append(short_id_pool_table.c.status == status)
        if batch_no is not None:
            filters.append(short_id_pool_table.c.batch_no == batch_no)
        if print_task_id is not None:
            filters.append(short_id_pool_table.c.print_task_id == print_task_id)
        return filters


class SqlAlchemyPrintTaskRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: PrintTask) -> None:
        # flushed at once so pool records referencing the task can follow
        self.session.add(entity)
        self.session.flush()

    def get(self, task_id: UUID) -> PrintTask | None:
        return self.session.get(PrintTask, task_id)

    def query(self, *, offset: int = 0, limit: int | None = None) -> Sequence[PrintTask]:
        stmt = (
            select(PrintTask)
            .order_by(print_task_table.c.created_at.desc(), print_task_table.c.name)
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.session.scalars(stmt).all()

    def count(self) -> int:
        stmt = select(func.count()).select_from(print_task_table)
        return self.session.execute(stmt).scalar_one()


class SqlAlchemyGraphRepository:
    """Nodes and hyperedges as plain Core rows, read back into frozen snapshots."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # nodes ----------------------------------------------------------------------

    def upsert_panel(self, panel: PanelNode) -> None:
        self._upsert(
            graph_panel_table,
            panel.id,
            name=panel.name,
            short_id=panel.short_id,
            device_id=panel.device_id,
            device_name=panel.device_name,
        )

    def upsert_port(self, port: PortNode) -> None:
        self._upsert(
            graph_port_table,
            port.id,
            panel_id=port.panel_id,
            number=port.number,
            status=port.status,
            short_id=port.short_id,
            panel_name=port.panel_name,
            device_id=port.device_id,
            device_name=port.device_name,
        )

    def get_ports(self, port_ids: Iterable[UUID]) -> dict[UUID, PortNode]:
        wanted = set(port_ids)
        if not wanted:
            return {}
        stmt = select(graph_port_table).where(graph_port_table.c.id.in_(wanted))
        return {row.id: _port_from_row(row) for row in self.session.execute(stmt)}

    def get_panels(self, panel_ids: Iterable[UUID]) -> dict[UUID, PanelNode]:
        wanted = set(panel_ids)
        if not wanted:
            return {}
        stmt = select(graph_panel_table).where(graph_panel_table.c.id.in_(wanted))
        return {row.id: _panel_from_row(row) for row in self.session.execute(stmt)}

    def ports_for_panels(self, panel_ids: Iterable[UUID]) -> Sequence[PortNode]:
        wanted = set(panel_ids)
        if not wanted:
            return []
        stmt = (
            select(graph_port_table)
            .where(graph_port_table.c.panel_id.in_(wanted))
            .order_by(graph_port_table.c.number, graph_port_table.c.id)
        )
        return [_port_from_row(row) for row in self.session.execute(stmt)]

    def remove_port(self, port_id: UUID) -> None:
        self.session.execute(delete(graph_port_table).where(graph_port_table.c.id == port_id))

    def remove_panel(self, panel_id: UUID) -> None:
        self.session.execute(delete(graph_panel_table).where(graph_panel_table.c.id == panel_id))

    # hyperedges -------------------------------------------------------------------

    def upsert_cable(self, cable_id: UUID, attributes: CableAttributes) -> None:
        self._upsert(
            graph_cable_table,
            cable_id,
            label=attributes.label,
            cable_type=attributes.cable_type,
            color=attributes.color,
            length=attributes.length,
            short_id=attributes.short_id,
        )

    def get_cable(self, cable_id: UUID) -> CableHyperedge | None:
        return self.get_cables([cable_id]).get(cable_id)

    def get_cables(self, cable_ids: Iterable[UUID]) -> dict[UUID, CableHyperedge]:
        wanted = set(cable_ids)
        if not wanted:
            return {}
        stmt = select(graph_cable_table).where(graph_cable_table.c.id.in_(wanted))
        return {row.id: _cable_from_row(row) for row in self.session.execute(stmt)}

    def remove_cable(self, cable_id: UUID) -> bool:
        self.session.execute(
            delete(graph_incidence_table).where(graph_incidence_table.c.cable_id == cable_id)
        )
        result = self.session.execute(
            delete(graph_cable_table).where(graph_cable_table.c.id == cable_id)
        )
        return bool(result.rowcount)  # pyright: ignore[reportAttributeAccessIssue]

    # incidences -------------------------------------------------------------------

    def add_incidence(self, incidence: Incidence) -> None:
        stmt = insert(graph_incidence_table).values(
            cable_id=incidence.cable_id,
            port_id=incidence.port_id,
            role=incidence.role,
            endpoint_id=incidence.endpoint_id,
            endpoint_short_id=incidence.endpoint_short_id,
        )
        try:
            with self.session.begin_nested():
                self.session.execute(stmt)
        except IntegrityError as exc:
            # the port was plugged into another cable after the caller checked it
            existing = self.incidences_for_ports([incidence.port_id])
            if not existing or existing[0].cable_id == incidence.cable_id:
                raise
            raise PortAlreadyConnectedError(incidence.port_id, existing[0].cable_id) from exc

    def remove_incidence(self, port_id: UUID) -> None:
        self.session.execute(
            delete(graph_incidence_table).where(graph_incidence_table.c.port_id == port_id)
        )

    def incidences_for_ports(self, port_ids: Iterable[UUID]) -> Sequence[Incidence]:
        wanted = set(port_ids)
        if not wanted:
            return []
        return self._incidences(graph_incidence_table.c.port_id.in_(wanted))

    def incidences_for_cables(self, cable_ids: Iterable[UUID]) -> Sequence[Incidence]:
        wanted = set(cable_ids)
        if not wanted:
            return []
        return self._incidences(graph_incidence_table.c.cable_id.in_(wanted))

    def incidence_for_endpoint(self, endpoint_id: UUID) -> Incidence | None:
        found = self._incidences(graph_incidence_table.c.endpoint_id == endpoint_id)
        return found[0] if found else None

    def _incidences(self, condition: ColumnElement[bool]) -> list[Incidence]:
        stmt = (
            select(graph_incidence_table)
            .where(condition)
            .order_by(graph_incidence_table.c.cable_id, graph_incidence_table.c.role)
        )
        return [
            Incidence(
                cable_id=row.cable_id,
                port_id=row.port_id,
                role=row.role,
                endpoint_id=row.endpoint_id,
                endpoint_short_id=row.endpoint_short_id,
            )
            for row in self.session.execute(stmt)
        ]

    def _upsert(self, table: Table, key: UUID, **values: object) -> None:
        result = self.session.execute(update(table).where(table.c.id == key).values(**values))
        if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
            self.session.execute(insert(table).values(id=key, **values))


def _port_from_row(row: Row[Any]) -> PortNode:
    return PortNode(
        id=row.id,
        panel_id=row.panel_id,
        number=row.number,
        status=row.status,
        short_id=row.short_id,
        panel_name=row.panel_name,
        device_id=row.device_id,
        device_name=row.device_name,
    )


def _panel_from_row(row: Row[Any]) -> PanelNode:
    return PanelNode(
        id=row.id,
        name=row.name,
        short_id=row.short_id,
        device_id=row.device_id,
        device_name=row.device_name,
    )


def _cable_from_row(row: Row[Any]) -> CableHyperedge:
    return CableHyperedge(
        id=row.id,
        attributes=CableAttributes(
            label=row.label,
            cable_type=row.cable_type,
            color=row.color,
            length=row.length,
            short_id=row.short_id,
        ),
    )
