from __future__ import annotations

from uuid import uuid4

import pytest

from patchbay.domain.errors import InvalidHyperedgeError
from patchbay.domain.model import (
    Branched,
    CableEndpoint,
    Incidence,
    PointToPoint,
    branch_end_types,
    is_valid_end_type,
    link_from_incidences,
    validate_end_types,
)
from tests.helpers.cabling import make_panel, make_port


@pytest.mark.parametrize("value", ["A", "B", "B1", "B12"])
def test_valid_end_types(value: str) -> None:
    assert is_valid_end_type(value)


@pytest.mark.parametrize("value", ["", "C", "B0", "B01", "A1", "b", "AB"])
def test_invalid_end_types(value: str) -> None:
    assert not is_valid_end_type(value)


def test_validate_end_types_requires_exactly_one_a() -> None:
    validate_end_types(["A", "B1", "B2"])

    with pytest.raises(InvalidHyperedgeError, match="exactly one A"):
        validate_end_types(["B1", "B2"])
    with pytest.raises(InvalidHyperedgeError, match="Duplicate"):
        validate_end_types(["A", "A", "B"])
    with pytest.raises(InvalidHyperedgeError, match="Invalid end types"):
        validate_end_types(["A", "C"])


def test_branch_end_types() -> None:
    assert branch_end_types(2) == ("A", "B")
    assert branch_end_types(4) == ("A", "B1", "B2", "B3")
    with pytest.raises(InvalidHyperedgeError):
        branch_end_types(1)


def test_cable_endpoint_rejects_bad_end_type() -> None:
    with pytest.raises(InvalidHyperedgeError):
        CableEndpoint(cable_id=uuid4(), end_type="Z")


def test_link_from_incidences_tags_point_to_point() -> None:
    cable_id = uuid4()
    a, b = uuid4(), uuid4()

    link = link_from_incidences(
        cable_id,
        [
            Incidence(cable_id=cable_id, port_id=b, role="B"),
            Incidence(cable_id=cable_id, port_id=a, role="A"),
        ],
    )

    assert link == PointToPoint(cable_id, a, b)


def test_link_from_incidences_orders_branches_numerically() -> None:
    cable_id = uuid4()
    ports = [uuid4() for _ in range(4)]
    roles = ["B10", "A", "B2", "B1"]

    link = link_from_incidences(
        cable_id,
        [
            Incidence(cable_id=cable_id, port_id=port, role=role)
            for port, role in zip(ports, roles, strict=True)
        ],
    )

    assert isinstance(link, Branched)
    assert link.endpoints == (ports[1], ports[3], ports[2], ports[0])


def test_link_from_incidences_needs_two_ends() -> None:
    cable_id = uuid4()
    with pytest.raises(InvalidHyperedgeError):
        link_from_incidences(cable_id, [Incidence(cable_id=cable_id, port_id=uuid4(), role="A")])


def test_port_node_exposes_denormalised_panel() -> None:
    panel = make_panel("Rack 1 / PP-01", device_name="Patch panel")
    port = make_port(panel, "24")

    assert port.panel is not None
    assert port.panel.id == panel.id
    assert port.panel.name == "Rack 1 / PP-01"
    assert make_port(None).panel is None
