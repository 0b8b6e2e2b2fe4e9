"""Read side of the connectivity graph: peers, panel connections, bounded expansion."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from patchbay.config.topology import TopologyConfig
from patchbay.domain.model import CableHyperedge, PanelNode, link_from_incidences

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from uuid import UUID

    from patchbay.domain.model import CableLink, Incidence, PortNode, ShortId
    from patchbay.domain.ports import ConnectivityUnitOfWork, GraphRepository

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConnectionEnd:
    port: PortNode
    role: str
    endpoint_short_id: ShortId | None = None


@dataclass(frozen=True, slots=True)
class PanelConnection:
    """One connected port of a panel and everything on the other ends of its cable."""

    cable: CableHyperedge
    port: ConnectionEnd
    peers: tuple[ConnectionEnd, ...]

    @property
    def port_a(self) -> PortNode:
        return self.port.port

    @property
    def port_b(self) -> PortNode | None:
        """The single far end of a point-to-point cable, ``None`` when branched."""
        if len(self.peers) != 1:
            return None
        return self.peers[0].port


@dataclass(slots=True)
class TopologyFragment:
    """Union of the nodes and cables reached from a starting panel."""

    root_panel_id: UUID
    max_depth: int
    panels: dict[UUID, PanelNode] = field(default_factory=dict)
    ports: dict[UUID, PortNode] = field(default_factory=dict)
    cables: dict[UUID, CableHyperedge] = field(default_factory=dict)
    edges: dict[UUID, CableLink] = field(default_factory=dict)
    depth_by_panel: dict[UUID, int] = field(default_factory=dict)


class TopologyResolver:
    def __init__(
        self,
        unit_of_work_factory: Callable[[], ConnectivityUnitOfWork],
        config: TopologyConfig | None = None,
    ) -> None:
        self.unit_of_work_factory = unit_of_work_factory
        self.config = config or TopologyConfig()

    def find_peer(self, port_id: UUID) -> frozenset[UUID]:
        """Ports sharing a cable with ``port_id``; empty when it is not connected."""

        with self.unit_of_work_factory() as uow:
            members = _cable_members(uow.repositories.graph, port_id)
        return frozenset(
            incidence.port_id for incidence in members if incidence.port_id != port_id
        )

    def find_link(self, port_id: UUID) -> CableLink | None:
        with self.unit_of_work_factory() as uow:
            members = _cable_members(uow.repositories.graph, port_id)
        if not members:
            return None
        return link_from_incidences(members[0].cable_id, members)

    def find_panel_connections(self, panel_id: UUID) -> list[PanelConnection]:
        with self.unit_of_work_factory() as uow:
            graph = uow.repositories.graph
            local_ports = {port.id: port for port in graph.ports_for_panels([panel_id])}
            local = graph.incidences_for_ports(local_ports)
            cable_ids = {incidence.cable_id for incidence in local}
            cables = graph.get_cables(cable_ids)
            members = _group_by_cable(graph.incidences_for_cables(cable_ids))
            ports = graph.get_ports(
                incidence.port_id for group in members.values() for incidence in group
            )

        connections: list[PanelConnection] = []
        for incidence in local:
            peers = tuple(
                ConnectionEnd(ports[peer.port_id], peer.role, peer.endpoint_short_id)
                for peer in members[incidence.cable_id]
                if peer.port_id != incidence.port_id and peer.port_id in ports
            )
            connections.append(
                PanelConnection(
                    cable=cables.get(incidence.cable_id, CableHyperedge(id=incidence.cable_id)),
                    port=ConnectionEnd(
                        local_ports[incidence.port_id],
                        incidence.role,
                        incidence.endpoint_short_id,
                    ),
                    peers=peers,
                )
            )
        connections.sort(key=lambda item: (item.port_a.number or "", str(item.port_a.id)))
        return connections

    def find_topology(self, panel_id: UUID, max_depth: int | None = None) -> TopologyFragment:
        """Breadth-first expansion over panels; one hop is one cable crossing.

        Panels first reached at ``max_depth`` are included but not expanded, so
        every cable in the fragment has at least one end on an expanded panel.
        """

        depth = self.config.default_depth if max_depth is None else max_depth
        if depth < 0:
            raise ValueError("max_depth must not be negative")
        if depth > self.config.max_depth:
            raise ValueError(f"max_depth must not exceed {self.config.max_depth}")

        fragment = TopologyFragment(root_panel_id=panel_id, max_depth=depth)
        fragment.depth_by_panel[panel_id] = 0
        frontier = [panel_id]

        with self.unit_of_work_factory() as uow:
            graph = uow.repositories.graph
            for level in range(depth):
                if not frontier:
                    break
                frontier = _expand(graph, fragment, frontier, level + 1)
            _fill_panels(graph, fragment)

        log.debug(
            "Topology from panel %s (depth %d): %d panels, %d cables",
            panel_id,
            depth,
            len(fragment.panels),
            len(fragment.edges),
        )
        return fragment


def _cable_members(graph: GraphRepository, port_id: UUID) -> Sequence[Incidence]:
    own = graph.incidences_for_ports([port_id])
    if not own:
        return ()
    return graph.incidences_for_cables([own[0].cable_id])


def _group_by_cable(incidences: Iterable[Incidence]) -> dict[UUID, list[Incidence]]:
    grouped: dict[UUID, list[Incidence]] = defaultdict(list)
    for incidence in incidences:
        grouped[incidence.cable_id].append(incidence)
    return grouped


def _expand(
    graph: GraphRepository,
    fragment: TopologyFragment,
    frontier: Sequence[UUID],
    next_depth: int,
) -> list[UUID]:
    """Cross every cable leaving ``frontier`` once; return newly reached panels."""

    local_ports = graph.ports_for_panels(frontier)
    for port in local_ports:
        fragment.ports[port.id] = port
    local = graph.incidences_for_ports(port.id for port in local_ports)
    cable_ids = {incidence.cable_id for incidence in local} - fragment.edges.keys()
    if not cable_ids:
        return []

    members = _group_by_cable(graph.incidences_for_cables(cable_ids))
    fragment.cables.update(graph.get_cables(cable_ids))
    far_ports = graph.get_ports(
        incidence.port_id for group in members.values() for incidence in group
    )

    reached: list[UUID] = []
    for cable_id, group in members.items():
        if len(group) >= 2:  # noqa: PLR2004
            fragment.edges[cable_id] = link_from_incidences(cable_id, group)
        fragment.cables.setdefault(cable_id, CableHyperedge(id=cable_id))
        for incidence in group:
            port = far_ports.get(incidence.port_id)
            if port is None:
                continue
            fragment.ports.setdefault(port.id, port)
            if port.panel_id is not None and port.panel_id not in fragment.depth_by_panel:
                fragment.depth_by_panel[port.panel_id] = next_depth
                reached.append(port.panel_id)
    return reached


def _fill_panels(graph: GraphRepository, fragment: TopologyFragment) -> None:
    stored = graph.get_panels(fragment.depth_by_panel)
    copies = {port.panel_id: port.panel for port in fragment.ports.values()}
    for panel_id in fragment.depth_by_panel:
        panel = stored.get(panel_id) or copies.get(panel_id) or PanelNode(id=panel_id)
        fragment.panels[panel_id] = panel
