"""Physical connectivity: cable hyperedges between ports and read-side queries."""

from __future__ import annotations

from .graph import ConnectivityGraph, ensure_ports_free, validate_endpoints
from .topology import ConnectionEnd, PanelConnection, TopologyFragment, TopologyResolver

__all__ = [
    "ConnectionEnd",
    "ConnectivityGraph",
    "PanelConnection",
    "TopologyFragment",
    "TopologyResolver",
    "ensure_ports_free",
    "validate_endpoints",
]
