"""Identity records: allocations, pool labels and print tasks.

The allocation table answers "who owns this number right now"; the pool ledger
tracks the life of a physical label. Both can describe the same shortID.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from patchbay.domain.errors import (
    AlreadyBoundError,
    PrintTaskStateError,
    ShortIdCancelledError,
)
from patchbay.domain.model.enums import EntityType, PoolStatus, PrintTaskStatus

if TYPE_CHECKING:
    from patchbay.domain.model.primitives import ShortId


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ShortIdOwner:
    """Result of a lookup: which entity a shortID points at."""

    entity_type: EntityType
    entity_id: UUID


@dataclass(eq=False, kw_only=True)
class AllocationRecord:
    short_id: ShortId
    entity_type: EntityType
    entity_id: UUID | None = None
    allocated_at: datetime = field(default_factory=utcnow)

    @property
    def owner(self) -> ShortIdOwner | None:
        if self.entity_id is None:
            return None
        return ShortIdOwner(self.entity_type, self.entity_id)


@dataclass(eq=False, kw_only=True)
class PoolRecord:
    """A shortID reserved ahead of time for a physical label."""

    short_id: ShortId
    status: PoolStatus = PoolStatus.GENERATED
    batch_no: str | None = None
    print_task_id: UUID | None = None
    entity_type: EntityType | None = None
    entity_id: UUID | None = None
    bound_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_reason: str | None = None
    released_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_unbound(self) -> bool:
        return self.status in (PoolStatus.GENERATED, PoolStatus.PRINTED)

    @property
    def owner(self) -> ShortIdOwner | None:
        """Owner recorded by the pool, ignoring bindings whose entity was released."""
        if self.status is not PoolStatus.BOUND or self.released_at is not None:
            return None
        if self.entity_type is None or self.entity_id is None:
            return None
        return ShortIdOwner(self.entity_type, self.entity_id)

    def bind(self, entity_type: EntityType, entity_id: UUID, *, at: datetime | None = None) -> None:
        if self.status is PoolStatus.BOUND:
            raise AlreadyBoundError(self.short_id)
        if self.status is PoolStatus.CANCELLED:
            raise ShortIdCancelledError(self.short_id)
        now = at or utcnow()
        self.status = PoolStatus.BOUND
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.bound_at = now
        self.updated_at = now

    def cancel(self, reason: str | None, *, at: datetime | None = None) -> None:
        # Cancelled labels may already be discarded in the field; never revive them.
        if self.status is PoolStatus.BOUND:
            raise AlreadyBoundError(self.short_id)
        if self.status is PoolStatus.CANCELLED:
            raise ShortIdCancelledError(self.short_id)
        now = at or utcnow()
        self.status = PoolStatus.CANCELLED
        self.cancelled_at = now
        self.cancelled_reason = reason
        self.updated_at = now

    def mark_printed(self, *, at: datetime | None = None) -> bool:
        """GENERATED -> PRINTED. Returns whether the status changed."""
        if self.status is not PoolStatus.GENERATED:
            return False
        self.status = PoolStatus.PRINTED
        self.updated_at = at or utcnow()
        return True

    def mark_released(self, *, at: datetime | None = None) -> None:
        now = at or utcnow()
        self.released_at = now
        self.updated_at = now


@dataclass(eq=False, kw_only=True)
class PrintTask:
    """A request to pre-print ``count`` fresh labels."""

    id: UUID = field(default_factory=uuid4)
    name: str
    count: int
    entity_type: EntityType | None = None
    status: PrintTaskStatus = PrintTaskStatus.PENDING
    created_by: str | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.count <= 0:
            raise ValueError("print task count must be positive")
        if not self.name.strip():
            raise ValueError("print task name must not be blank")

    def start_printing(self) -> None:
        if self.status in (PrintTaskStatus.COMPLETED, PrintTaskStatus.FAILED):
            raise PrintTaskStateError(self.id, self.status, "start printing")
        self.status = PrintTaskStatus.PRINTING

    def complete(self, *, at: datetime | None = None) -> None:
        if self.status is PrintTaskStatus.FAILED:
            raise PrintTaskStateError(self.id, self.status, "complete")
        if self.status is PrintTaskStatus.COMPLETED:
            return
        self.status = PrintTaskStatus.COMPLETED
        self.completed_at = at or utcnow()

    def fail(self, reason: str | None = None) -> None:
        if self.status is PrintTaskStatus.COMPLETED:
            raise PrintTaskStateError(self.id, self.status, "fail")
        self.status = PrintTaskStatus.FAILED
        if reason:
            self.notes = f"{self.notes}\n{reason}" if self.notes else reason
