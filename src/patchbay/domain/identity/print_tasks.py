"""Print task lifecycle: create, export, confirm printed, complete or fail."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from patchbay.config.identity import IdentityConfig
from patchbay.domain.errors import PrintTaskNotFoundError
from patchbay.domain.identity.rules import generate_block
from patchbay.domain.model import Page, PoolStatus, PrintTask, format_short_id
from patchbay.domain.model.paging import page_offset

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from patchbay.domain.model import EntityType, PoolRecord, ShortId
    from patchbay.domain.ports import IdentityRepositories, IdentityUnitOfWork

log = logging.getLogger(__name__)

EXPORT_COLUMNS = ("short_id", "display_id", "status", "batch_no", "entity_type", "task_name")


@dataclass(frozen=True, slots=True)
class PrintTaskRow:
    """One label to print."""

    short_id: ShortId
    display_id: str
    status: PoolStatus
    batch_no: str | None
    entity_type: EntityType | None
    task_name: str


class PrintTasks:
    def __init__(
        self,
        unit_of_work_factory: Callable[[], IdentityUnitOfWork],
        config: IdentityConfig | None = None,
    ) -> None:
        self.unit_of_work_factory = unit_of_work_factory
        self.config = config or IdentityConfig()

    def create(
        self,
        name: str,
        count: int,
        *,
        entity_type: EntityType | None = None,
        created_by: str | None = None,
        notes: str | None = None,
    ) -> tuple[PrintTask, list[ShortId]]:
        """Create a PENDING task together with its ``count`` fresh pool records."""

        task = PrintTask(
            name=name,
            count=count,
            entity_type=entity_type,
            created_by=created_by,
            notes=notes,
        )
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            repos.sequence.lock()
            repos.print_tasks.add(task)
            short_ids = generate_block(repos, count, batch_no=task.name, print_task_id=task.id)
            uow.commit()
        log.info(
            "Created print task %s (%s) with %d labels starting at %d",
            task.id,
            task.name,
            count,
            short_ids[0],
        )
        return task, short_ids

    def get(self, task_id: UUID) -> PrintTask:
        with self.unit_of_work_factory() as uow:
            return _require_task(uow.repositories, task_id)

    def list_tasks(self, *, page: int = 1, page_size: int = 50) -> Page[PrintTask]:
        offset = page_offset(page, page_size)
        with self.unit_of_work_factory() as uow:
            tasks = uow.repositories.print_tasks
            total = tasks.count()
            items = tasks.query(offset=offset, limit=page_size)
        return Page(items=tuple(items), total=total, page=page, page_size=page_size)

    def export(self, task_id: UUID) -> list[PrintTaskRow]:
        """Rows for every label of the task that has not been bound or cancelled."""

        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            task = _require_task(repos, task_id)
            records = _unbound_records(repos, task_id)
        return [
            PrintTaskRow(
                short_id=record.short_id,
                display_id=format_short_id(
                    record.short_id,
                    prefix=self.config.display_prefix,
                    width=self.config.display_width,
                ),
                status=record.status,
                batch_no=record.batch_no,
                entity_type=task.entity_type,
                task_name=task.name,
            )
            for record in records
        ]

    def export_csv(self, task_id: UUID) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(EXPORT_COLUMNS)
        for row in self.export(task_id):
            writer.writerow(
                (
                    row.short_id,
                    row.display_id,
                    row.status.value,
                    row.batch_no or "",
                    row.entity_type.value if row.entity_type else "",
                    row.task_name,
                )
            )
        return buffer.getvalue()

    def confirm_printed(self, task_id: UUID) -> int:
        """Mark the task PRINTING and its GENERATED labels PRINTED. Returns labels moved."""

        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            repos.sequence.lock()
            task = _require_task(repos, task_id)
            task.start_printing()
            moved = _mark_printed(repos, task_id)
            uow.commit()
        log.info("Print task %s confirmed printed (%d labels)", task_id, moved)
        return moved

    def complete(self, task_id: UUID) -> PrintTask:
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            repos.sequence.lock()
            task = _require_task(repos, task_id)
            task.complete()
            moved = _mark_printed(repos, task_id)
            uow.commit()
        log.info("Print task %s completed (%d labels marked printed)", task_id, moved)
        return task

    def fail(self, task_id: UUID, reason: str | None = None) -> PrintTask:
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            task = _require_task(repos, task_id)
            task.fail(reason)
            uow.commit()
        log.warning("Print task %s failed: %s", task_id, reason or "no reason given")
        return task


def _require_task(repos: IdentityRepositories, task_id: UUID) -> PrintTask:
    task = repos.print_tasks.get(task_id)
    if task is None:
        raise PrintTaskNotFoundError(task_id)
    return task


def _unbound_records(repos: IdentityRepositories, task_id: UUID) -> Sequence[PoolRecord]:
    records = repos.pool.query(print_task_id=task_id)
    return [record for record in records if record.is_unbound]


def _mark_printed(repos: IdentityRepositories, task_id: UUID) -> int:
    moved = 0
    for record in repos.pool.query(print_task_id=task_id, status=PoolStatus.GENERATED):
        if record.mark_printed():
            moved += 1
    return moved
