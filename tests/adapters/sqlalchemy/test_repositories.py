from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import Session

from patchbay.adapters.sqlalchemy import (
    SqlAlchemyAllocationRepository,
    SqlAlchemyGraphRepository,
    SqlAlchemyPoolRepository,
    SqlAlchemySequenceRepository,
    create_all_tables,
    start_mappers,
)
from patchbay.adapters.sqlalchemy.mappings import short_id_sequence_table
from patchbay.domain.errors import (
    PortAlreadyConnectedError,
    SequenceNotInitialisedError,
    ShortIdConflictError,
)
from patchbay.domain.model import (
    AllocationRecord,
    CableAttributes,
    EntityType,
    Incidence,
    PoolRecord,
    PoolStatus,
    PortStatus,
)
from tests.helpers.cabling import make_panel, make_port


def test_reserve_returns_first_of_block(sqlite_session: Session) -> None:
    sequence = SqlAlchemySequenceRepository(sqlite_session)

    assert sequence.reserve(1) == 1
    assert sequence.reserve(3) == 2
    assert sequence.current_value() == 5


def test_reserve_rejects_non_positive_count(sqlite_session: Session) -> None:
    with pytest.raises(ValueError, match="count must be positive"):
        SqlAlchemySequenceRepository(sqlite_session).reserve(0)


def test_claim_only_moves_counter_forward(sqlite_session: Session) -> None:
    sequence = SqlAlchemySequenceRepository(sqlite_session)

    sequence.claim(10)
    assert sequence.current_value() == 11
    sequence.claim(4)
    assert sequence.current_value() == 11
    sequence.claim(11)
    assert sequence.current_value() == 12


def test_missing_counter_row_is_reported(sqlite_session: Session) -> None:
    sqlite_session.execute(delete(short_id_sequence_table))
    sequence = SqlAlchemySequenceRepository(sqlite_session)

    with pytest.raises(SequenceNotInitialisedError):
        sequence.reserve(1)
    with pytest.raises(SequenceNotInitialisedError):
        sequence.lock()
    with pytest.raises(SequenceNotInitialisedError):
        sequence.current_value()


def test_duplicate_allocation_is_a_conflict(sqlite_session: Session) -> None:
    allocations = SqlAlchemyAllocationRepository(sqlite_session)
    allocations.add(AllocationRecord(short_id=7, entity_type=EntityType.ROOM, entity_id=uuid4()))
    sqlite_session.commit()
    sqlite_session.expunge_all()

    with pytest.raises(ShortIdConflictError):
        allocations.add(
            AllocationRecord(short_id=7, entity_type=EntityType.PORT, entity_id=uuid4())
        )


def test_allocation_remove(sqlite_session: Session) -> None:
    allocations = SqlAlchemyAllocationRepository(sqlite_session)
    allocations.add(AllocationRecord(short_id=3, entity_type=EntityType.PANEL, entity_id=uuid4()))

    assert allocations.remove(3)
    assert not allocations.remove(3)
    assert allocations.get(3) is None


def test_pool_query_and_counts(sqlite_session: Session) -> None:
    pool = SqlAlchemyPoolRepository(sqlite_session)
    for short_id in range(1, 6):
        pool.add(PoolRecord(short_id=short_id, batch_no="odd" if short_id % 2 else "even"))
    cancelled = PoolRecord(short_id=6, batch_no="even")
    cancelled.cancel("torn")
    pool.add(cancelled)
    sqlite_session.flush()

    odd = pool.query(batch_no="odd")
    assert [record.short_id for record in odd] == [1, 3, 5]
    assert pool.count(batch_no="even") == 3
    assert pool.count(status=PoolStatus.CANCELLED, batch_no="even") == 1
    assert [record.short_id for record in pool.query(offset=2, limit=2)] == [3, 4]
    assert pool.count_by_status() == {PoolStatus.GENERATED: 5, PoolStatus.CANCELLED: 1}
    assert set(pool.get_many([1, 6, 99])) == {1, 6}


def test_graph_upsert_and_read_back(sqlite_session: Session) -> None:
    graph = SqlAlchemyGraphRepository(sqlite_session)
    panel = make_panel("P", short_id=4)
    port = make_port(panel, "12", status=PortStatus.OCCUPIED)
    cable_id = uuid4()

    graph.upsert_panel(panel)
    graph.upsert_port(port)
    graph.upsert_cable(cable_id, CableAttributes(label="x", color="red", length=1.5))
    graph.upsert_cable(cable_id, CableAttributes(label="y"))

    assert graph.get_panels([panel.id]) == {panel.id: panel}
    assert graph.get_ports([port.id]) == {port.id: port}
    assert graph.ports_for_panels([panel.id]) == [port]
    stored = graph.get_cable(cable_id)
    assert stored is not None
    assert stored.attributes == CableAttributes(label="y")


def test_graph_incidences(sqlite_session: Session) -> None:
    graph = SqlAlchemyGraphRepository(sqlite_session)
    port_a, port_b = make_port(make_panel()), make_port(make_panel())
    cable_id, endpoint_id = uuid4(), uuid4()
    graph.upsert_port(port_a)
    graph.upsert_port(port_b)
    graph.upsert_cable(cable_id, CableAttributes())
    graph.add_incidence(Incidence(cable_id=cable_id, port_id=port_a.id, role="A"))
    graph.add_incidence(
        Incidence(cable_id=cable_id, port_id=port_b.id, role="B", endpoint_id=endpoint_id)
    )

    assert [incidence.role for incidence in graph.incidences_for_cables([cable_id])] == ["A", "B"]
    found = graph.incidence_for_endpoint(endpoint_id)
    assert found is not None
    assert found.port_id == port_b.id

    graph.remove_incidence(port_a.id)
    assert [incidence.port_id for incidence in graph.incidences_for_ports([port_a.id])] == []
    assert graph.remove_cable(cable_id)
    assert graph.incidences_for_cables([cable_id]) == []
    assert not graph.remove_cable(cable_id)


def test_create_all_tables_seeds_counter_once() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    create_all_tables(engine)
    create_all_tables(engine)

    with Session(engine) as session:
        sequence = SqlAlchemySequenceRepository(session)
        assert sequence.current_value() == 1
        assert sequence.reserve(2) == 1
    engine.dispose()


def test_second_incidence_on_a_port_names_the_owning_cable(sqlite_session: Session) -> None:
    graph = SqlAlchemyGraphRepository(sqlite_session)
    port = make_port(make_panel())
    owner_id, intruder_id = uuid4(), uuid4()
    graph.upsert_port(port)
    graph.upsert_cable(owner_id, CableAttributes())
    graph.upsert_cable(intruder_id, CableAttributes())
    graph.add_incidence(Incidence(cable_id=owner_id, port_id=port.id, role="A"))

    with pytest.raises(PortAlreadyConnectedError) as excinfo:
        graph.add_incidence(Incidence(cable_id=intruder_id, port_id=port.id, role="A"))

    assert excinfo.value.cable_id == owner_id
    assert [incidence.cable_id for incidence in graph.incidences_for_ports([port.id])] == [
        owner_id
    ]
