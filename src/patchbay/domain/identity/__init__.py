"""Global shortID identity: allocator facade, label pool and print tasks."""

from __future__ import annotations

from .allocator import (
    AllocationRequest,
    IdentityAllocator,
    IntegrityIssue,
    LabelCheck,
    LabelCheckReport,
)
from .pool import BatchCancelFailure, BatchCancelResult, PoolLedger
from .print_tasks import EXPORT_COLUMNS, PrintTaskRow, PrintTasks

__all__ = [
    "EXPORT_COLUMNS",
    "AllocationRequest",
    "BatchCancelFailure",
    "BatchCancelResult",
    "IdentityAllocator",
    "IntegrityIssue",
    "LabelCheck",
    "LabelCheckReport",
    "PoolLedger",
    "PrintTaskRow",
    "PrintTasks",
]
