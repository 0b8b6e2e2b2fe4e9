"""Cables, endpoints and the node/edge records of the connectivity graph.

Graph records are immutable snapshots: the graph store is synchronised from the
relational entities, it never originates identity.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from patchbay.domain.errors import InvalidHyperedgeError
from patchbay.domain.model.enums import PortStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from patchbay.domain.model.primitives import ShortId

END_TYPE_A = "A"
END_TYPE_B = "B"
_END_TYPE_PATTERN = re.compile(r"A|B|B[1-9]\d*")


def is_valid_end_type(end_type: str) -> bool:
    return _END_TYPE_PATTERN.fullmatch(end_type) is not None


def validate_end_types(end_types: Iterable[str]) -> None:
    """End types must be well formed, unique within a cable, with exactly one ``A``."""

    values = list(end_types)
    invalid = [value for value in values if not is_valid_end_type(value)]
    if invalid:
        raise InvalidHyperedgeError(f"Invalid end types: {', '.join(sorted(invalid))}")
    duplicates = sorted(value for value, seen in Counter(values).items() if seen > 1)
    if duplicates:
        raise InvalidHyperedgeError(f"Duplicate end types: {', '.join(duplicates)}")
    if values.count(END_TYPE_A) != 1:
        raise InvalidHyperedgeError("A cable needs exactly one A end")


def branch_end_types(count: int) -> tuple[str, ...]:
    """Default end types for a cable with ``count`` ends: A, B or A, B1, B2, ..."""

    if count < 2:  # noqa: PLR2004
        raise InvalidHyperedgeError("A cable needs at least two ends")
    if count == 2:  # noqa: PLR2004
        return (END_TYPE_A, END_TYPE_B)
    return (END_TYPE_A, *(f"{END_TYPE_B}{index}" for index in range(1, count)))


@dataclass(frozen=True, slots=True, kw_only=True)
class CableEndpoint:
    """One physical end of a cable; may exist before it is plugged into a port."""

    id: UUID = field(default_factory=uuid4)
    cable_id: UUID
    end_type: str
    short_id: ShortId | None = None
    port_id: UUID | None = None

    def __post_init__(self) -> None:
        if not is_valid_end_type(self.end_type):
            raise InvalidHyperedgeError(f"Invalid end type: {self.end_type!r}")


@dataclass(frozen=True, slots=True, kw_only=True)
class CableAttributes:
    label: str | None = None
    cable_type: str | None = None
    color: str | None = None
    length: float | None = None
    short_id: ShortId | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class PanelNode:
    id: UUID
    name: str | None = None
    short_id: ShortId | None = None
    device_id: UUID | None = None
    device_name: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class PortNode:
    """A port with the display fields needed to draw it without a relational read."""

    id: UUID
    panel_id: UUID | None = None
    number: str | None = None
    status: PortStatus = PortStatus.AVAILABLE
    short_id: ShortId | None = None
    panel_name: str | None = None
    device_id: UUID | None = None
    device_name: str | None = None

    @property
    def panel(self) -> PanelNode | None:
        if self.panel_id is None:
            return None
        return PanelNode(
            id=self.panel_id,
            name=self.panel_name,
            device_id=self.device_id,
            device_name=self.device_name,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class CableHyperedge:
    id: UUID
    attributes: CableAttributes = field(default_factory=CableAttributes)


@dataclass(frozen=True, slots=True, kw_only=True)
class Incidence:
    """Membership of one port in one cable."""

    cable_id: UUID
    port_id: UUID
    role: str
    endpoint_id: UUID | None = None
    endpoint_short_id: ShortId | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class GraphEndpoint:
    """Input to ``connect``: the port to plug in and the cable end it receives."""

    port: PortNode
    role: str
    endpoint_id: UUID | None = None
    endpoint_short_id: ShortId | None = None

    @property
    def port_id(self) -> UUID:
        return self.port.id


@dataclass(frozen=True, slots=True)
class PointToPoint:
    cable_id: UUID
    a: UUID
    b: UUID

    @property
    def port_ids(self) -> tuple[UUID, ...]:
        return (self.a, self.b)


@dataclass(frozen=True, slots=True)
class Branched:
    cable_id: UUID
    endpoints: tuple[UUID, ...]

    @property
    def port_ids(self) -> tuple[UUID, ...]:
        return self.endpoints


type CableLink = PointToPoint | Branched


def link_from_incidences(cable_id: UUID, incidences: Iterable[Incidence]) -> CableLink:
    """Build the tagged link for a cable, ordered by end type (A first)."""

    ordered = sorted(incidences, key=lambda incidence: _role_sort_key(incidence.role))
    port_ids = tuple(incidence.port_id for incidence in ordered)
    if len(port_ids) < 2:  # noqa: PLR2004
        raise InvalidHyperedgeError(f"Cable {cable_id} has fewer than two endpoints")
    if len(port_ids) == 2:  # noqa: PLR2004
        return PointToPoint(cable_id, port_ids[0], port_ids[1])
    return Branched(cable_id, port_ids)


def _role_sort_key(role: str) -> tuple[int, int, str]:
    if role == END_TYPE_A:
        return (0, 0, role)
    if role == END_TYPE_B:
        return (1, 0, role)
    if is_valid_end_type(role):
        return (1, int(role[1:]), role)
    return (2, 0, role)
