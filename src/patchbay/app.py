"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from patchbay.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyConnectivityUnitOfWork,
    SqlAlchemyIdentityUnitOfWork,
    is_started,
    startup,
)
from patchbay.config import get_identity_config, get_topology_config
from patchbay.domain.connectivity import ConnectivityGraph, TopologyResolver
from patchbay.domain.identity import IdentityAllocator, PoolLedger, PrintTasks
from patchbay.domain.ports.unit_of_work import ConnectivityUnitOfWork, IdentityUnitOfWork
from patchbay.domain.workflows import ScanResult, scan

if TYPE_CHECKING:
    from patchbay.config import IdentityConfig, TopologyConfig

IdentityUnitOfWorkFactory = Callable[[], IdentityUnitOfWork]
ConnectivityUnitOfWorkFactory = Callable[[], ConnectivityUnitOfWork]


log = getLogger(__name__)


@dataclass(slots=True)
class Services:
    """The domain services wired to one pair of unit-of-work factories."""

    allocator: IdentityAllocator
    pool: PoolLedger
    print_tasks: PrintTasks
    graph: ConnectivityGraph
    resolver: TopologyResolver
    identity_config: IdentityConfig
    topology_config: TopologyConfig


def _ensure_started() -> None:
    if not is_started():
        startup()


def build_services(
    *,
    identity_unit_of_work_factory: IdentityUnitOfWorkFactory | None = None,
    connectivity_unit_of_work_factory: ConnectivityUnitOfWorkFactory | None = None,
    identity_config: IdentityConfig | None = None,
    topology_config: TopologyConfig | None = None,
) -> Services:
    """Wire the services, starting the SQLAlchemy adapter when a default factory is used."""

    if identity_unit_of_work_factory is None or connectivity_unit_of_work_factory is None:
        _ensure_started()
    identity_uow = identity_unit_of_work_factory or SqlAlchemyIdentityUnitOfWork
    connectivity_uow = connectivity_unit_of_work_factory or SqlAlchemyConnectivityUnitOfWork
    effective_identity = identity_config or get_identity_config()
    effective_topology = topology_config or get_topology_config()

    log.debug(
        "Building services: prefix=%s, width=%s, topology depth=%s/%s",
        effective_identity.display_prefix,
        effective_identity.display_width,
        effective_topology.default_depth,
        effective_topology.max_depth,
    )
    return Services(
        allocator=IdentityAllocator(identity_uow, effective_identity),
        pool=PoolLedger(identity_uow, effective_identity),
        print_tasks=PrintTasks(identity_uow, effective_identity),
        graph=ConnectivityGraph(connectivity_uow),
        resolver=TopologyResolver(connectivity_uow, effective_topology),
        identity_config=effective_identity,
        topology_config=effective_topology,
    )


def scan_code(code: str, *, services: Services | None = None) -> ScanResult:
    """Resolve a scanned label with the configured adapters."""

    effective = services or build_services()
    result = scan(
        code,
        allocator=effective.allocator,
        graph=effective.graph,
        resolver=effective.resolver,
        config=effective.identity_config,
    )
    if result.found:
        log.info("Scan %s resolved to %s", result.display_id, result.owner)
    else:
        log.info("Scan %s: no owner (%s)", result.display_id, result.label_state)
    return result
