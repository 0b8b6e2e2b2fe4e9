"""Pre-printed label pool: generate, bind, cancel and inspect pool records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from patchbay.config.identity import IdentityConfig
from patchbay.domain.errors import IdentityError, ShortIdNotFoundError
from patchbay.domain.identity.rules import bind_pool_record, ensure_positive, generate_block
from patchbay.domain.model import Page, PoolStatus, parse_range_expression, utcnow
from patchbay.domain.model.paging import page_offset

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from patchbay.domain.model import EntityType, PoolRecord, ShortId
    from patchbay.domain.ports import IdentityUnitOfWork

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


def default_batch_no() -> str:
    return utcnow().strftime("batch_%Y%m%d%H%M%S")


@dataclass(frozen=True, slots=True)
class BatchCancelFailure:
    short_id: ShortId
    reason: str


@dataclass(slots=True)
class BatchCancelResult:
    """Outcome of cancelling every member of a range expression independently."""

    success_count: int = 0
    failed_details: list[BatchCancelFailure] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed_details)


class PoolLedger:
    def __init__(
        self,
        unit_of_work_factory: Callable[[], IdentityUnitOfWork],
        config: IdentityConfig | None = None,
    ) -> None:
        self.unit_of_work_factory = unit_of_work_factory
        self.config = config or IdentityConfig()

    def generate(
        self,
        count: int,
        batch_no: str | None = None,
        print_task_id: UUID | None = None,
    ) -> list[ShortId]:
        """Reserve a contiguous block of ``count`` fresh labels."""

        batch = batch_no or default_batch_no()
        with self.unit_of_work_factory() as uow:
            short_ids = generate_block(
                uow.repositories, count, batch_no=batch, print_task_id=print_task_id
            )
            uow.commit()
        log.info(
            "Generated %d pool shortIDs %d..%d in batch %s",
            count,
            short_ids[0],
            short_ids[-1],
            batch,
        )
        return short_ids

    def get(self, short_id: ShortId) -> PoolRecord | None:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.pool.get(short_id)

    def bind(self, short_id: ShortId, entity_type: EntityType, entity_id: UUID) -> PoolRecord:
        ensure_positive(short_id)
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            repos.sequence.lock()
            record = repos.pool.get(short_id)
            if record is None:
                raise ShortIdNotFoundError(short_id)
            bind_pool_record(repos, record, entity_type, entity_id)
            uow.commit()
        log.info("Bound pool shortID %d to %s %s", short_id, entity_type, entity_id)
        return record

    def cancel(self, short_id: ShortId, reason: str | None = None) -> PoolRecord:
        ensure_positive(short_id)
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            repos.sequence.lock()
            record = repos.pool.get(short_id)
            if record is None:
                raise ShortIdNotFoundError(short_id)
            record.cancel(reason)
            uow.commit()
        log.info("Cancelled pool shortID %d (%s)", short_id, reason or "no reason given")
        return record

    def batch_cancel(self, range_expr: str, reason: str | None = None) -> BatchCancelResult:
        """Cancel every shortID in ``range_expr``; failures are reported, not raised."""

        short_ids = parse_range_expression(
            range_expr,
            prefix=self.config.display_prefix,
            max_size=self.config.max_range_size,
        )
        result = BatchCancelResult()
        for short_id in short_ids:
            try:
                self.cancel(short_id, reason)
            except IdentityError as exc:
                result.failed_details.append(BatchCancelFailure(short_id, str(exc)))
            else:
                result.success_count += 1
        log.info(
            "Batch cancel %r: %d cancelled, %d failed",
            range_expr,
            result.success_count,
            result.failed_count,
        )
        return result

    def list_records(
        self,
        *,
        status: PoolStatus | None = None,
        batch_no: str | None = None,
        print_task_id: UUID | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[PoolRecord]:
        offset = page_offset(page, page_size)
        with self.unit_of_work_factory() as uow:
            pool = uow.repositories.pool
            total = pool.count(status=status, batch_no=batch_no, print_task_id=print_task_id)
            items = pool.query(
                status=status,
                batch_no=batch_no,
                print_task_id=print_task_id,
                offset=offset,
                limit=page_size,
            )
        return Page(items=tuple(items), total=total, page=page, page_size=page_size)

    def stats(self) -> dict[PoolStatus, int]:
        with self.unit_of_work_factory() as uow:
            counts = uow.repositories.pool.count_by_status()
        return {status: counts.get(status, 0) for status in PoolStatus}
