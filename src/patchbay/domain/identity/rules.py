"""Transactional building blocks shared by the allocator, pool ledger and print tasks.

Each helper runs inside a caller-owned unit of work and expects the caller to
commit. Helpers that write always touch the counter row first so the whole
transaction is serialised against concurrent allocators.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from patchbay.domain.errors import (
    InvalidShortIdError,
    ShortIdCancelledError,
    ShortIdConflictError,
)
from patchbay.domain.model import (
    AllocationRecord,
    LabelState,
    PoolRecord,
    PoolStatus,
    ShortIdOwner,
)

if TYPE_CHECKING:
    from uuid import UUID

    from patchbay.domain.model import EntityType, ShortId
    from patchbay.domain.ports import IdentityRepositories


def ensure_positive(short_id: ShortId) -> None:
    if short_id <= 0:
        raise InvalidShortIdError(f"ShortID must be positive, got {short_id}")


def resolve_owner(repos: IdentityRepositories, short_id: ShortId) -> ShortIdOwner | None:
    """Allocation table first, BOUND pool records second."""

    allocation = repos.allocations.get(short_id)
    if allocation is not None and allocation.owner is not None:
        return allocation.owner
    record = repos.pool.get(short_id)
    if record is None:
        return None
    return record.owner


def label_state(record: PoolRecord | None) -> LabelState:
    if record is None:
        return LabelState.UNKNOWN
    if record.status is PoolStatus.CANCELLED:
        return LabelState.CANCELLED
    if record.status is PoolStatus.BOUND:
        return LabelState.RETIRED
    return LabelState.FRESH


def pin(
    repos: IdentityRepositories,
    entity_type: EntityType,
    entity_id: UUID,
    short_id: ShortId,
) -> AllocationRecord:
    """Claim a caller-chosen number, honouring any pool label that carries it."""

    ensure_positive(short_id)
    repos.sequence.claim(short_id)

    existing = repos.allocations.get(short_id)
    if existing is not None:
        raise ShortIdConflictError(short_id, existing.entity_type)

    target = ShortIdOwner(entity_type, entity_id)
    record = repos.pool.get(short_id)
    if record is not None:
        if record.status is PoolStatus.CANCELLED:
            raise ShortIdCancelledError(short_id)
        if record.status is PoolStatus.BOUND:
            # a pool-only binding for the same entity is mirrored, anything else is taken
            if record.owner != target:
                raise ShortIdConflictError(short_id, record.entity_type)
        else:
            record.bind(entity_type, entity_id)

    allocation = AllocationRecord(short_id=short_id, entity_type=entity_type, entity_id=entity_id)
    repos.allocations.add(allocation)
    return allocation


def bind_pool_record(
    repos: IdentityRepositories,
    record: PoolRecord,
    entity_type: EntityType,
    entity_id: UUID,
) -> None:
    """Bind a pool label and mirror it into the allocation table."""

    target = ShortIdOwner(entity_type, entity_id)
    allocation = repos.allocations.get(record.short_id)
    if allocation is not None and allocation.owner != target:
        raise ShortIdConflictError(record.short_id, allocation.entity_type)

    record.bind(entity_type, entity_id)
    if allocation is None:
        repos.allocations.add(
            AllocationRecord(
                short_id=record.short_id,
                entity_type=entity_type,
                entity_id=entity_id,
            )
        )


def generate_block(
    repos: IdentityRepositories,
    count: int,
    *,
    batch_no: str | None,
    print_task_id: UUID | None = None,
) -> list[ShortId]:
    """Reserve ``count`` contiguous numbers with one counter update and record them."""

    if count <= 0:
        raise ValueError("count must be positive")
    first = repos.sequence.reserve(count)
    short_ids = list(range(first, first + count))
    for short_id in short_ids:
        repos.pool.add(
            PoolRecord(
                short_id=short_id,
                batch_no=batch_no,
                print_task_id=print_task_id,
            )
        )
    return short_ids
