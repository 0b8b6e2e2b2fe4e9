"""Write side of the connectivity graph: cables as hyperedges between ports.

The graph mirrors relational entities. Callers push node snapshots in through
``connect`` and the ``sync_*`` hooks and tell the graph when entities go away;
the graph never reads the relational store.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from patchbay.domain.errors import InvalidHyperedgeError, PortAlreadyConnectedError
from patchbay.domain.model import (
    CableAttributes,
    Incidence,
    link_from_incidences,
    validate_end_types,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from patchbay.domain.model import CableLink, GraphEndpoint, PanelNode, PortNode
    from patchbay.domain.ports import ConnectivityUnitOfWork, GraphRepository

log = logging.getLogger(__name__)


def validate_endpoints(endpoints: Sequence[GraphEndpoint]) -> None:
    """Shape checks that need no storage: arity, distinct ports, end types."""

    if len(endpoints) < 2:  # noqa: PLR2004
        raise InvalidHyperedgeError("A cable needs at least two connected endpoints")
    port_ids = [endpoint.port_id for endpoint in endpoints]
    if len(set(port_ids)) != len(port_ids):
        raise InvalidHyperedgeError("A cable cannot connect the same port twice")
    validate_end_types(endpoint.role for endpoint in endpoints)


def ensure_ports_free(
    graph: GraphRepository, cable_id: UUID, port_ids: Sequence[UUID]
) -> None:
    for incidence in graph.incidences_for_ports(port_ids):
        if incidence.cable_id != cable_id:
            raise PortAlreadyConnectedError(incidence.port_id, incidence.cable_id)


class ConnectivityGraph:
    def __init__(self, unit_of_work_factory: Callable[[], ConnectivityUnitOfWork]) -> None:
        self.unit_of_work_factory = unit_of_work_factory

    def connect(
        self,
        cable_id: UUID,
        endpoints: Sequence[GraphEndpoint],
        cable: CableAttributes | None = None,
    ) -> CableLink:
        """Create or replace the hyperedge for ``cable_id``.

        Connecting an already connected cable replaces its endpoint set, so a
        re-patch is one call. Nothing is written when validation fails.
        """

        validate_endpoints(endpoints)
        port_ids = [endpoint.port_id for endpoint in endpoints]

        with self.unit_of_work_factory() as uow:
            graph = uow.repositories.graph
            ensure_ports_free(graph, cable_id, port_ids)

            existing = graph.get_cable(cable_id)
            if cable is not None:
                attributes = cable
            elif existing is not None:
                attributes = existing.attributes
            else:
                attributes = CableAttributes()
            graph.upsert_cable(cable_id, attributes)

            _store_nodes(graph, [endpoint.port for endpoint in endpoints])

            for incidence in graph.incidences_for_cables([cable_id]):
                graph.remove_incidence(incidence.port_id)
            incidences = [
                Incidence(
                    cable_id=cable_id,
                    port_id=endpoint.port_id,
                    role=endpoint.role,
                    endpoint_id=endpoint.endpoint_id,
                    endpoint_short_id=endpoint.endpoint_short_id,
                )
                for endpoint in endpoints
            ]
            for incidence in incidences:
                graph.add_incidence(incidence)
            uow.commit()

        link = link_from_incidences(cable_id, incidences)
        log.info("Connected cable %s across %d ports", cable_id, len(incidences))
        return link

    def disconnect(self, cable_id: UUID) -> bool:
        """Remove the cable's hyperedge. Returns whether anything was removed."""

        with self.unit_of_work_factory() as uow:
            removed = uow.repositories.graph.remove_cable(cable_id)
            uow.commit()
        if removed:
            log.info("Disconnected cable %s", cable_id)
        return removed

    def sync_port(self, port: PortNode) -> None:
        with self.unit_of_work_factory() as uow:
            uow.repositories.graph.upsert_port(port)
            uow.commit()
        log.debug("Synced port node %s", port.id)

    def sync_panel(self, panel: PanelNode) -> None:
        """Upsert the panel and refresh the panel fields copied onto its ports."""

        with self.unit_of_work_factory() as uow:
            graph = uow.repositories.graph
            graph.upsert_panel(panel)
            for port in graph.ports_for_panels([panel.id]):
                graph.upsert_port(
                    replace(
                        port,
                        panel_name=panel.name,
                        device_id=panel.device_id,
                        device_name=panel.device_name,
                    )
                )
            uow.commit()
        log.debug("Synced panel node %s", panel.id)

    def sync_cable(self, cable_id: UUID, attributes: CableAttributes) -> bool:
        """Refresh a connected cable's display fields. Unknown cables are ignored."""

        with self.unit_of_work_factory() as uow:
            graph = uow.repositories.graph
            if graph.get_cable(cable_id) is None:
                return False
            graph.upsert_cable(cable_id, attributes)
            uow.commit()
        return True

    def remove_port(self, port_id: UUID) -> None:
        with self.unit_of_work_factory() as uow:
            _drop_ports(uow.repositories.graph, [port_id])
            uow.commit()
        log.info("Removed port node %s", port_id)

    def remove_panel(self, panel_id: UUID) -> None:
        with self.unit_of_work_factory() as uow:
            graph = uow.repositories.graph
            _drop_ports(graph, [port.id for port in graph.ports_for_panels([panel_id])])
            graph.remove_panel(panel_id)
            uow.commit()
        log.info("Removed panel node %s", panel_id)

    def cable_port_ids(self, cable_id: UUID) -> tuple[UUID, ...]:
        """Ports of the cable ordered by end type, A first; empty when not connected."""

        with self.unit_of_work_factory() as uow:
            incidences = uow.repositories.graph.incidences_for_cables([cable_id])
        if len(incidences) < 2:  # noqa: PLR2004
            return ()
        return link_from_incidences(cable_id, incidences).port_ids

    def find_endpoint_port(self, endpoint_id: UUID) -> UUID | None:
        with self.unit_of_work_factory() as uow:
            incidence = uow.repositories.graph.incidence_for_endpoint(endpoint_id)
        return incidence.port_id if incidence is not None else None


def _store_nodes(graph: GraphRepository, ports: Sequence[PortNode]) -> None:
    panels = {port.panel_id: port.panel for port in ports if port.panel is not None}
    known = graph.get_panels(panels)
    for panel_id, panel in panels.items():
        # an explicit sync_panel carries more detail than a port's copy
        if panel_id not in known and panel is not None:
            graph.upsert_panel(panel)
    for port in ports:
        graph.upsert_port(port)


def _drop_ports(graph: GraphRepository, port_ids: Sequence[UUID]) -> None:
    """Delete ports; any cable left with fewer than two ends goes with them."""

    if not port_ids:
        return
    affected = {incidence.cable_id for incidence in graph.incidences_for_ports(port_ids)}
    for port_id in port_ids:
        graph.remove_incidence(port_id)
        graph.remove_port(port_id)
    remaining: dict[UUID, int] = dict.fromkeys(affected, 0)
    for incidence in graph.incidences_for_cables(affected):
        remaining[incidence.cable_id] += 1
    for cable_id, count in remaining.items():
        if count < 2:  # noqa: PLR2004
            graph.remove_cable(cable_id)
            log.info("Removed cable %s: fewer than two endpoints left", cable_id)
