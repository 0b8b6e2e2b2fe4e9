"""Public domain model surface."""

from __future__ import annotations

from patchbay.domain.model.cabling import (
    END_TYPE_A,
    END_TYPE_B,
    Branched,
    CableAttributes,
    CableEndpoint,
    CableHyperedge,
    CableLink,
    GraphEndpoint,
    Incidence,
    PanelNode,
    PointToPoint,
    PortNode,
    branch_end_types,
    is_valid_end_type,
    link_from_incidences,
    validate_end_types,
)
from patchbay.domain.model.enums import (
    EntityType,
    LabelState,
    PoolStatus,
    PortStatus,
    PrintTaskStatus,
)
from patchbay.domain.model.identity import (
    AllocationRecord,
    PoolRecord,
    PrintTask,
    ShortIdOwner,
    utcnow,
)
from patchbay.domain.model.paging import Page
from patchbay.domain.model.primitives import (
    ShortId,
    format_short_id,
    parse_range_expression,
    parse_short_id,
)

__all__ = [  # noqa: RUF022
    # identity
    "AllocationRecord",
    "PoolRecord",
    "PrintTask",
    "ShortIdOwner",
    "utcnow",
    # cabling
    "END_TYPE_A",
    "END_TYPE_B",
    "Branched",
    "CableAttributes",
    "CableEndpoint",
    "CableHyperedge",
    "CableLink",
    "GraphEndpoint",
    "Incidence",
    "PanelNode",
    "PointToPoint",
    "PortNode",
    "branch_end_types",
    "is_valid_end_type",
    "link_from_incidences",
    "validate_end_types",
    # enums
    "EntityType",
    "LabelState",
    "PoolStatus",
    "PortStatus",
    "PrintTaskStatus",
    # paging
    "Page",
    # primitives
    "ShortId",
    "format_short_id",
    "parse_range_expression",
    "parse_short_id",
]
