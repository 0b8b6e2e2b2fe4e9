"""Cross-subsystem workflows: registering cables and scan-to-locate.

The identity and connectivity stores commit independently, so each workflow
orders its steps and undoes earlier steps itself when a later one fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING
from uuid import uuid4

from patchbay.config.identity import IdentityConfig
from patchbay.domain.connectivity import validate_endpoints
from patchbay.domain.errors import (
    AlreadyBoundError,
    InvalidHyperedgeError,
    PatchbayError,
    ShortIdCancelledError,
    ShortIdConflictError,
)
from patchbay.domain.identity import AllocationRequest
from patchbay.domain.model import (
    END_TYPE_A,
    END_TYPE_B,
    CableEndpoint,
    EntityType,
    LabelState,
    format_short_id,
    parse_short_id,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from patchbay.domain.connectivity import ConnectivityGraph, TopologyResolver
    from patchbay.domain.identity import IdentityAllocator, LabelCheck
    from patchbay.domain.model import (
        CableAttributes,
        CableLink,
        GraphEndpoint,
        ShortId,
        ShortIdOwner,
    )

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RegisteredCable:
    cable_id: UUID
    link: CableLink
    endpoints: tuple[CableEndpoint, ...]


@dataclass(frozen=True, slots=True)
class ScanResult:
    """What a scanned label points at, and what is physically on the other end."""

    code: str
    short_id: ShortId
    display_id: str
    owner: ShortIdOwner | None
    label_state: LabelState | None = None
    port_id: UUID | None = None
    peers: frozenset[UUID] = frozenset()

    @property
    def found(self) -> bool:
        return self.owner is not None


def raise_for_label(check: LabelCheck) -> None:
    """Turn an unavailable label check into the matching identity error."""

    if check.available:
        return
    if check.owner is not None:
        raise ShortIdConflictError(check.short_id, check.owner.entity_type)
    if check.state is LabelState.CANCELLED:
        raise ShortIdCancelledError(check.short_id)
    raise AlreadyBoundError(check.short_id)


def register_cable(
    *,
    allocator: IdentityAllocator,
    graph: ConnectivityGraph,
    cable_id: UUID,
    endpoints: Sequence[GraphEndpoint],
    cable: CableAttributes | None = None,
) -> RegisteredCable:
    """Connect a new cable and give each of its ends a shortID.

    Ends carrying ``endpoint_short_id`` were labelled in the field and are pinned;
    the others get the next free number. All ends are numbered in one identity
    transaction; if it fails, the connection is undone and no label is consumed.
    """

    validate_endpoints(endpoints)
    scanned = [endpoint.endpoint_short_id for endpoint in endpoints if endpoint.endpoint_short_id]
    if len(set(scanned)) != len(scanned):
        raise InvalidHyperedgeError("Two cable ends cannot carry the same label")
    for check in allocator.check_labels(scanned).checks:
        raise_for_label(check)

    if graph.cable_port_ids(cable_id):
        raise InvalidHyperedgeError(f"Cable {cable_id} is already connected")

    endpoint_ids = [endpoint.endpoint_id or uuid4() for endpoint in endpoints]
    prepared = [
        replace(endpoint, endpoint_id=endpoint_id)
        for endpoint, endpoint_id in zip(endpoints, endpoint_ids, strict=True)
    ]
    graph.connect(cable_id, prepared, cable)

    try:
        allocated = allocator.allocate_all(
            [
                AllocationRequest(
                    EntityType.CABLE_ENDPOINT, endpoint_id, endpoint.endpoint_short_id or None
                )
                for endpoint, endpoint_id in zip(prepared, endpoint_ids, strict=True)
            ]
        )
    except PatchbayError:
        log.warning("Rolling back registration of cable %s", cable_id)
        graph.disconnect(cable_id)
        raise

    labelled = [
        replace(endpoint, endpoint_short_id=short_id)
        for endpoint, short_id in zip(prepared, allocated, strict=True)
    ]
    link = graph.connect(cable_id, labelled, cable)
    log.info("Registered cable %s with %d ends", cable_id, len(labelled))
    return RegisteredCable(
        cable_id=cable_id,
        link=link,
        endpoints=tuple(
            CableEndpoint(
                id=endpoint_id,
                cable_id=cable_id,
                end_type=endpoint.role,
                short_id=endpoint.endpoint_short_id,
                port_id=endpoint.port_id,
            )
            for endpoint, endpoint_id in zip(labelled, endpoint_ids, strict=True)
        ),
    )


def manual_inventory_cable(
    *,
    allocator: IdentityAllocator,
    cable_id: UUID,
    short_id_a: ShortId,
    short_id_b: ShortId,
) -> tuple[CableEndpoint, CableEndpoint]:
    """Record a cable found in the field by the labels on its two ends.

    Nothing is connected; the ends are plugged in later through ``connect``.
    """

    if short_id_a == short_id_b:
        raise InvalidHyperedgeError("Both cable ends carry the same label")
    for check in allocator.check_labels([short_id_a, short_id_b]).checks:
        raise_for_label(check)

    end_a = CableEndpoint(cable_id=cable_id, end_type=END_TYPE_A, short_id=short_id_a)
    end_b = CableEndpoint(cable_id=cable_id, end_type=END_TYPE_B, short_id=short_id_b)
    allocator.allocate_all(
        [
            AllocationRequest(EntityType.CABLE_ENDPOINT, end_a.id, short_id_a),
            AllocationRequest(EntityType.CABLE_ENDPOINT, end_b.id, short_id_b),
        ]
    )
    log.info("Inventoried cable %s with ends %d and %d", cable_id, short_id_a, short_id_b)
    return end_a, end_b


def remove_cable(
    *,
    allocator: IdentityAllocator,
    graph: ConnectivityGraph,
    cable_id: UUID,
    endpoint_short_ids: Iterable[ShortId] = (),
) -> None:
    graph.disconnect(cable_id)
    for short_id in endpoint_short_ids:
        allocator.release(short_id)
    log.info("Removed cable %s", cable_id)


def scan(
    code: str,
    *,
    allocator: IdentityAllocator,
    graph: ConnectivityGraph,
    resolver: TopologyResolver,
    config: IdentityConfig | None = None,
) -> ScanResult:
    """Resolve a scanned barcode; ports and cable ends also report their peers."""

    identity = config or IdentityConfig()
    short_id = parse_short_id(code, prefix=identity.display_prefix)
    display_id = format_short_id(
        short_id, prefix=identity.display_prefix, width=identity.display_width
    )
    owner = allocator.lookup(short_id)
    if owner is None:
        check = allocator.check_label(short_id)
        return ScanResult(
            code=code,
            short_id=short_id,
            display_id=display_id,
            owner=None,
            label_state=check.state,
        )

    port_id: UUID | None = None
    if owner.entity_type is EntityType.PORT:
        port_id = owner.entity_id
    elif owner.entity_type is EntityType.CABLE_ENDPOINT:
        port_id = graph.find_endpoint_port(owner.entity_id)

    peers = resolver.find_peer(port_id) if port_id is not None else frozenset()
    return ScanResult(
        code=code,
        short_id=short_id,
        display_id=display_id,
        owner=owner,
        port_id=port_id,
        peers=peers,
    )
