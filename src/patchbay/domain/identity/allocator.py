"""The identity facade: obtain, pin, look up and release shortIDs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from patchbay.config.identity import IdentityConfig
from patchbay.domain.errors import ShortIdNotFoundError
from patchbay.domain.identity.rules import (
    ensure_positive,
    label_state,
    pin,
    resolve_owner,
)
from patchbay.domain.model import (
    AllocationRecord,
    LabelState,
    PoolStatus,
    ShortIdOwner,
    format_short_id,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from uuid import UUID

    from patchbay.domain.model import EntityType, ShortId
    from patchbay.domain.ports import IdentityUnitOfWork

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LabelCheck:
    """Whether a scanned or planned label may be bound to a new entity."""

    short_id: ShortId
    available: bool
    state: LabelState
    owner: ShortIdOwner | None = None

    @property
    def reason(self) -> str | None:
        if self.available:
            return None
        if self.owner is not None:
            return f"allocated to {self.owner.entity_type}"
        return f"label is {self.state}"


@dataclass(frozen=True, slots=True)
class LabelCheckReport:
    checks: tuple[LabelCheck, ...]

    @property
    def all_available(self) -> bool:
        return all(check.available for check in self.checks)

    @property
    def conflicts(self) -> tuple[LabelCheck, ...]:
        return tuple(check for check in self.checks if not check.available)


@dataclass(frozen=True, slots=True)
class AllocationRequest:
    """One entity to number; ``short_id`` pins a scanned label, ``None`` takes the next."""

    entity_type: EntityType
    entity_id: UUID
    short_id: ShortId | None = None


@dataclass(frozen=True, slots=True)
class IntegrityIssue:
    """A BOUND pool record naming a different entity than the allocation table."""

    short_id: ShortId
    allocation_owner: ShortIdOwner | None
    pool_owner: ShortIdOwner | None


class IdentityAllocator:
    """Single entry point for every shortID operation outside the pool workflow."""

    def __init__(
        self,
        unit_of_work_factory: Callable[[], IdentityUnitOfWork],
        config: IdentityConfig | None = None,
    ) -> None:
        self.unit_of_work_factory = unit_of_work_factory
        self.config = config or IdentityConfig()

    def _display(self, short_id: ShortId) -> str:
        return format_short_id(
            short_id,
            prefix=self.config.display_prefix,
            width=self.config.display_width,
        )

    def allocate(self, entity_type: EntityType, entity_id: UUID) -> ShortId:
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            short_id = repos.sequence.reserve(1)
            repos.allocations.add(
                AllocationRecord(short_id=short_id, entity_type=entity_type, entity_id=entity_id)
            )
            uow.commit()
        log.info("Allocated %s to %s %s", self._display(short_id), entity_type, entity_id)
        return short_id

    def allocate_pinned(
        self, entity_type: EntityType, entity_id: UUID, short_id: ShortId
    ) -> ShortId:
        """Bind a caller-chosen number, e.g. a label scanned during manual inventory."""

        with self.unit_of_work_factory() as uow:
            pin(uow.repositories, entity_type, entity_id, short_id)
            uow.commit()
        log.info("Pinned %s to %s %s", self._display(short_id), entity_type, entity_id)
        return short_id

    def batch_allocate(self, entities: Iterable[tuple[EntityType, UUID]]) -> list[ShortId]:
        """Allocate a contiguous block, one number per entity, in one transaction."""

        requested = list(entities)
        if not requested:
            return []
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            first = repos.sequence.reserve(len(requested))
            short_ids: list[ShortId] = []
            for offset, (entity_type, entity_id) in enumerate(requested):
                short_id = first + offset
                repos.allocations.add(
                    AllocationRecord(
                        short_id=short_id, entity_type=entity_type, entity_id=entity_id
                    )
                )
                short_ids.append(short_id)
            uow.commit()
        log.info(
            "Allocated %d shortIDs %s..%s",
            len(short_ids),
            self._display(short_ids[0]),
            self._display(short_ids[-1]),
        )
        return short_ids

    def allocate_all(self, requests: Sequence[AllocationRequest]) -> list[ShortId]:
        """Pin and allocate a set of entities together; any failure leaves nothing behind.

        Pinned numbers are claimed before fresh ones are drawn, so a fresh number
        never collides with a pin from the same request. Results follow request order.
        """

        if not requests:
            return []
        short_ids: list[ShortId | None] = [request.short_id for request in requests]
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            for request in requests:
                if request.short_id is not None:
                    pin(repos, request.entity_type, request.entity_id, request.short_id)
            for index, request in enumerate(requests):
                if request.short_id is None:
                    short_id = repos.sequence.reserve(1)
                    repos.allocations.add(
                        AllocationRecord(
                            short_id=short_id,
                            entity_type=request.entity_type,
                            entity_id=request.entity_id,
                        )
                    )
                    short_ids[index] = short_id
            uow.commit()
        allocated = [short_id for short_id in short_ids if short_id is not None]
        log.info(
            "Allocated %s to %d entities",
            ", ".join(self._display(short_id) for short_id in allocated),
            len(allocated),
        )
        return allocated

    def lookup(self, short_id: ShortId) -> ShortIdOwner | None:
        if short_id <= 0:
            return None
        with self.unit_of_work_factory() as uow:
            return resolve_owner(uow.repositories, short_id)

    def resolve(self, short_id: ShortId) -> ShortIdOwner:
        owner = self.lookup(short_id)
        if owner is None:
            raise ShortIdNotFoundError(short_id)
        return owner

    def is_allocated(self, short_id: ShortId) -> bool:
        return self.lookup(short_id) is not None

    def release(self, short_id: ShortId) -> None:
        """Forget the owner of ``short_id``. Releasing an unknown number is a no-op."""

        ensure_positive(short_id)
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            repos.sequence.lock()
            removed = repos.allocations.remove(short_id)
            record = repos.pool.get(short_id)
            stamped = False
            if record is not None and record.owner is not None:
                # status stays BOUND; the stamp only hides it from the lookup fallback
                record.mark_released()
                stamped = True
            uow.commit()
        if removed or stamped:
            log.info("Released %s", self._display(short_id))
        else:
            log.debug("Release of %s: nothing to do", self._display(short_id))

    def current_sequence_value(self) -> int:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.sequence.current_value()

    def check_label(self, short_id: ShortId) -> LabelCheck:
        return self.check_labels([short_id]).checks[0]

    def check_labels(self, short_ids: Iterable[ShortId]) -> LabelCheckReport:
        """Report which labels could still be bound to a new entity."""

        requested = list(short_ids)
        checks: list[LabelCheck] = []
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            for short_id in requested:
                ensure_positive(short_id)
                owner = resolve_owner(repos, short_id)
                state = label_state(repos.pool.get(short_id))
                available = owner is None and state in (LabelState.FRESH, LabelState.UNKNOWN)
                checks.append(
                    LabelCheck(short_id=short_id, available=available, state=state, owner=owner)
                )
        return LabelCheckReport(checks=tuple(checks))

    def find_inconsistencies(self) -> list[IntegrityIssue]:
        issues: list[IntegrityIssue] = []
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            bound = repos.pool.query(status=PoolStatus.BOUND)
            allocations = repos.allocations.get_many(record.short_id for record in bound)
            for record in bound:
                issue = _compare(record.short_id, allocations.get(record.short_id), record.owner)
                if issue is not None:
                    issues.append(issue)
        for issue in issues:
            log.warning(
                "Integrity issue on %s: allocation=%s pool=%s",
                self._display(issue.short_id),
                issue.allocation_owner,
                issue.pool_owner,
            )
        return issues


def _compare(
    short_id: ShortId,
    allocation: AllocationRecord | None,
    pool_owner: ShortIdOwner | None,
) -> IntegrityIssue | None:
    if allocation is None or pool_owner is None:
        return None
    if allocation.owner == pool_owner:
        return None
    return IntegrityIssue(
        short_id=short_id, allocation_owner=allocation.owner, pool_owner=pool_owner
    )
