from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from patchbay.domain.connectivity import ConnectivityGraph, TopologyResolver
from patchbay.domain.errors import (
    InvalidHyperedgeError,
    InvalidShortIdError,
    ShortIdCancelledError,
    ShortIdConflictError,
)
from patchbay.domain.identity import IdentityAllocator, LabelCheckReport, PoolLedger
from patchbay.domain.model import (
    EntityType,
    GraphEndpoint,
    LabelState,
    PointToPoint,
    PoolStatus,
    ShortIdOwner,
)
from patchbay.domain.workflows import manual_inventory_cable, register_cable, remove_cable, scan
from tests.helpers.cabling import endpoints_for, make_panel, make_port

if TYPE_CHECKING:
    from collections.abc import Iterable


def test_register_cable_allocates_every_end(
    allocator: IdentityAllocator, graph: ConnectivityGraph, resolver: TopologyResolver
) -> None:
    panel = make_panel()
    port_a, port_b = make_port(panel, "1"), make_port(make_panel(), "1")
    cable_id = uuid4()

    registered = register_cable(
        allocator=allocator,
        graph=graph,
        cable_id=cable_id,
        endpoints=endpoints_for([port_a, port_b]),
    )

    assert registered.link == PointToPoint(cable_id, port_a.id, port_b.id)
    assert [end.short_id for end in registered.endpoints] == [1, 2]
    end_a, end_b = registered.endpoints
    assert allocator.lookup(1) == ShortIdOwner(EntityType.CABLE_ENDPOINT, end_a.id)
    assert graph.find_endpoint_port(end_b.id) == port_b.id
    (connection,) = resolver.find_panel_connections(panel.id)
    assert connection.port.endpoint_short_id == 1
    assert connection.peers[0].endpoint_short_id == 2


def test_register_cable_pins_scanned_labels(
    allocator: IdentityAllocator, pool: PoolLedger, graph: ConnectivityGraph
) -> None:
    (label,) = pool.generate(1, "field labels")
    port_a, port_b = make_port(make_panel()), make_port(make_panel())

    registered = register_cable(
        allocator=allocator,
        graph=graph,
        cable_id=uuid4(),
        endpoints=[
            GraphEndpoint(port=port_a, role="A", endpoint_short_id=label),
            GraphEndpoint(port=port_b, role="B"),
        ],
    )

    assert [end.short_id for end in registered.endpoints] == [label, label + 1]
    record = pool.get(label)
    assert record is not None
    assert record.owner == ShortIdOwner(EntityType.CABLE_ENDPOINT, registered.endpoints[0].id)


def test_register_cable_rejects_taken_label_before_connecting(
    allocator: IdentityAllocator, graph: ConnectivityGraph, resolver: TopologyResolver
) -> None:
    taken = allocator.allocate(EntityType.PORT, uuid4())
    port_a, port_b = make_port(make_panel()), make_port(make_panel())

    with pytest.raises(ShortIdConflictError):
        register_cable(
            allocator=allocator,
            graph=graph,
            cable_id=uuid4(),
            endpoints=[
                GraphEndpoint(port=port_a, role="A", endpoint_short_id=taken),
                GraphEndpoint(port=port_b, role="B"),
            ],
        )

    assert resolver.find_peer(port_a.id) == frozenset()
    assert allocator.current_sequence_value() == taken + 1


def test_register_cable_rejects_cancelled_label(
    allocator: IdentityAllocator, pool: PoolLedger, graph: ConnectivityGraph
) -> None:
    (label,) = pool.generate(1, "batch")
    pool.cancel(label, "smudged")

    with pytest.raises(ShortIdCancelledError):
        register_cable(
            allocator=allocator,
            graph=graph,
            cable_id=uuid4(),
            endpoints=[
                GraphEndpoint(port=make_port(make_panel()), role="A", endpoint_short_id=label),
                GraphEndpoint(port=make_port(make_panel()), role="B"),
            ],
        )


def test_register_cable_rejects_duplicate_labels(
    allocator: IdentityAllocator, graph: ConnectivityGraph
) -> None:
    with pytest.raises(InvalidHyperedgeError, match="same label"):
        register_cable(
            allocator=allocator,
            graph=graph,
            cable_id=uuid4(),
            endpoints=[
                GraphEndpoint(port=make_port(make_panel()), role="A", endpoint_short_id=5),
                GraphEndpoint(port=make_port(make_panel()), role="B", endpoint_short_id=5),
            ],
        )


def test_register_cable_refuses_connected_cable(
    allocator: IdentityAllocator, graph: ConnectivityGraph
) -> None:
    cable_id = uuid4()
    graph.connect(cable_id, endpoints_for([make_port(make_panel()), make_port(make_panel())]))

    with pytest.raises(InvalidHyperedgeError, match="already connected"):
        register_cable(
            allocator=allocator,
            graph=graph,
            cable_id=cable_id,
            endpoints=endpoints_for([make_port(make_panel()), make_port(make_panel())]),
        )


def _taken_after_check(
    allocator: IdentityAllocator, monkeypatch: pytest.MonkeyPatch, short_id: int
) -> None:
    """Let another operator pin ``short_id`` right after the availability check."""

    original = allocator.check_labels

    def check_then_lose_race(short_ids: Iterable[int]) -> LabelCheckReport:
        report = original(short_ids)
        monkeypatch.setattr(allocator, "check_labels", original)
        allocator.allocate_pinned(EntityType.PORT, uuid4(), short_id)
        return report

    monkeypatch.setattr(allocator, "check_labels", check_then_lose_race)


def test_register_cable_lost_race_keeps_labels_fresh(
    allocator: IdentityAllocator,
    pool: PoolLedger,
    graph: ConnectivityGraph,
    resolver: TopologyResolver,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    label_x, label_y = pool.generate(2, "field labels")
    port_a, port_b = make_port(make_panel()), make_port(make_panel())
    cable_id = uuid4()
    _taken_after_check(allocator, monkeypatch, label_y)

    with pytest.raises(ShortIdConflictError):
        register_cable(
            allocator=allocator,
            graph=graph,
            cable_id=cable_id,
            endpoints=[
                GraphEndpoint(port=port_a, role="A", endpoint_short_id=label_x),
                GraphEndpoint(port=port_b, role="B", endpoint_short_id=label_y),
            ],
        )

    check = allocator.check_label(label_x)
    assert check.available
    assert check.state is LabelState.FRESH
    record = pool.get(label_x)
    assert record is not None
    assert record.status is PoolStatus.GENERATED
    assert record.owner is None
    assert graph.cable_port_ids(cable_id) == ()
    assert resolver.find_peer(port_a.id) == frozenset()

    registered = register_cable(
        allocator=allocator,
        graph=graph,
        cable_id=cable_id,
        endpoints=[
            GraphEndpoint(port=port_a, role="A", endpoint_short_id=label_x),
            GraphEndpoint(port=port_b, role="B"),
        ],
    )
    assert registered.endpoints[0].short_id == label_x


def test_register_cable_failure_draws_no_fresh_number(
    allocator: IdentityAllocator,
    graph: ConnectivityGraph,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _taken_after_check(allocator, monkeypatch, 50)

    with pytest.raises(ShortIdConflictError):
        register_cable(
            allocator=allocator,
            graph=graph,
            cable_id=uuid4(),
            endpoints=[
                GraphEndpoint(port=make_port(make_panel()), role="A"),
                GraphEndpoint(port=make_port(make_panel()), role="B", endpoint_short_id=50),
            ],
        )

    assert allocator.lookup(1) is None
    assert allocator.current_sequence_value() == 51


def test_manual_inventory_pins_both_ends(
    allocator: IdentityAllocator, pool: PoolLedger
) -> None:
    label_a, label_b = pool.generate(2, "field")
    cable_id = uuid4()

    end_a, end_b = manual_inventory_cable(
        allocator=allocator, cable_id=cable_id, short_id_a=label_a, short_id_b=label_b
    )

    assert (end_a.end_type, end_b.end_type) == ("A", "B")
    assert end_a.cable_id == end_b.cable_id == cable_id
    assert end_a.port_id is None
    assert allocator.lookup(label_b) == ShortIdOwner(EntityType.CABLE_ENDPOINT, end_b.id)


def test_manual_inventory_with_unprinted_numbers_moves_counter(
    allocator: IdentityAllocator,
) -> None:
    manual_inventory_cable(allocator=allocator, cable_id=uuid4(), short_id_a=40, short_id_b=41)

    assert allocator.allocate(EntityType.PORT, uuid4()) == 42


def test_manual_inventory_rejects_same_label(allocator: IdentityAllocator) -> None:
    with pytest.raises(InvalidHyperedgeError):
        manual_inventory_cable(allocator=allocator, cable_id=uuid4(), short_id_a=3, short_id_b=3)


def test_manual_inventory_leaves_nothing_behind_on_conflict(
    allocator: IdentityAllocator,
) -> None:
    taken = allocator.allocate(EntityType.ROOM, uuid4())

    with pytest.raises(ShortIdConflictError):
        manual_inventory_cable(
            allocator=allocator, cable_id=uuid4(), short_id_a=10, short_id_b=taken
        )

    assert allocator.lookup(10) is None


def test_manual_inventory_lost_race_keeps_first_label_fresh(
    allocator: IdentityAllocator, pool: PoolLedger, monkeypatch: pytest.MonkeyPatch
) -> None:
    label_a, label_b = pool.generate(2, "field")
    _taken_after_check(allocator, monkeypatch, label_b)

    with pytest.raises(ShortIdConflictError):
        manual_inventory_cable(
            allocator=allocator, cable_id=uuid4(), short_id_a=label_a, short_id_b=label_b
        )

    assert allocator.lookup(label_a) is None
    assert allocator.check_label(label_a).state is LabelState.FRESH
    record = pool.get(label_a)
    assert record is not None
    assert record.status is PoolStatus.GENERATED


def test_remove_cable_releases_labels(
    allocator: IdentityAllocator, graph: ConnectivityGraph, resolver: TopologyResolver
) -> None:
    port_a, port_b = make_port(make_panel()), make_port(make_panel())
    cable_id = uuid4()
    registered = register_cable(
        allocator=allocator,
        graph=graph,
        cable_id=cable_id,
        endpoints=endpoints_for([port_a, port_b]),
    )
    short_ids = [end.short_id for end in registered.endpoints if end.short_id is not None]

    remove_cable(
        allocator=allocator, graph=graph, cable_id=cable_id, endpoint_short_ids=short_ids
    )

    assert all(allocator.lookup(short_id) is None for short_id in short_ids)
    assert resolver.find_peer(port_a.id) == frozenset()


def test_scan_port_label_reports_peer(
    allocator: IdentityAllocator, graph: ConnectivityGraph, resolver: TopologyResolver
) -> None:
    port_a, port_b = make_port(make_panel()), make_port(make_panel())
    graph.connect(uuid4(), endpoints_for([port_a, port_b]))
    short_id = allocator.allocate(EntityType.PORT, port_a.id)

    result = scan(f"E-{short_id:05d}", allocator=allocator, graph=graph, resolver=resolver)

    assert result.found
    assert result.display_id == "E-00001"
    assert result.port_id == port_a.id
    assert result.peers == frozenset({port_b.id})


def test_scan_cable_end_label_reports_far_port(
    allocator: IdentityAllocator, graph: ConnectivityGraph, resolver: TopologyResolver
) -> None:
    port_a, port_b = make_port(make_panel()), make_port(make_panel())
    registered = register_cable(
        allocator=allocator,
        graph=graph,
        cable_id=uuid4(),
        endpoints=endpoints_for([port_a, port_b]),
    )
    end_a = registered.endpoints[0]
    assert end_a.short_id is not None

    result = scan(str(end_a.short_id), allocator=allocator, graph=graph, resolver=resolver)

    assert result.owner == ShortIdOwner(EntityType.CABLE_ENDPOINT, end_a.id)
    assert result.port_id == port_a.id
    assert result.peers == frozenset({port_b.id})


def test_scan_non_port_owner_has_no_peers(
    allocator: IdentityAllocator, graph: ConnectivityGraph, resolver: TopologyResolver
) -> None:
    cabinet = uuid4()
    short_id = allocator.allocate(EntityType.CABINET, cabinet)

    result = scan(str(short_id), allocator=allocator, graph=graph, resolver=resolver)

    assert result.owner == ShortIdOwner(EntityType.CABINET, cabinet)
    assert result.port_id is None
    assert result.peers == frozenset()


def test_scan_unowned_label_reports_state(
    allocator: IdentityAllocator,
    pool: PoolLedger,
    graph: ConnectivityGraph,
    resolver: TopologyResolver,
) -> None:
    (fresh,) = pool.generate(1, "batch")

    fresh_result = scan(str(fresh), allocator=allocator, graph=graph, resolver=resolver)
    unknown_result = scan("E-00099", allocator=allocator, graph=graph, resolver=resolver)

    assert not fresh_result.found
    assert fresh_result.label_state is LabelState.FRESH
    assert unknown_result.label_state is LabelState.UNKNOWN


def test_scan_rejects_malformed_code(
    allocator: IdentityAllocator, graph: ConnectivityGraph, resolver: TopologyResolver
) -> None:
    with pytest.raises(InvalidShortIdError):
        scan("X-1", allocator=allocator, graph=graph, resolver=resolver)
