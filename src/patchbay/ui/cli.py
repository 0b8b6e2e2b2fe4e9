# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from patchbay.app import Services, build_services, scan_code
from patchbay.config import (
    ConfigurationError,
    configure_logging,
    get_identity_config,
    get_topology_config,
)
from patchbay.domain.errors import PatchbayError
from patchbay.domain.model import (
    EntityType,
    PoolStatus,
    format_short_id,
    parse_range_expression,
    parse_short_id,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from patchbay.config import IdentityConfig, TopologyConfig

log = logging.getLogger(__name__)

_UUID_ARGUMENTS = ("entity_id", "task_id", "panel_id")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage shortIDs, label pools and cabling")
    subparsers = parser.add_subparsers(dest="command", required=True)

    lookup = subparsers.add_parser("lookup", help="Resolve a scanned label")
    lookup.add_argument("code", help="Label as scanned, e.g. E-00012 or 12")

    allocate = subparsers.add_parser("allocate", help="Allocate a shortID to an entity")
    allocate.add_argument("entity_type", type=EntityType, choices=list(EntityType))
    allocate.add_argument("entity_id", help="UUID of the entity")
    allocate.add_argument(
        "--short-id",
        dest="short_id",
        help="Pin this number instead of taking the next free one",
    )

    release = subparsers.add_parser("release", help="Release a shortID")
    release.add_argument("short_id")

    pool = subparsers.add_parser("pool", help="Pre-printed label pool")
    pool_sub = pool.add_subparsers(dest="pool_command", required=True)
    pool_generate = pool_sub.add_parser("generate", help="Reserve fresh labels")
    pool_generate.add_argument("count", type=int)
    pool_generate.add_argument("--batch-no", help="Batch name (defaults to a timestamp)")
    pool_cancel = pool_sub.add_parser("cancel", help="Cancel one unbound label")
    pool_cancel.add_argument("short_id")
    pool_cancel.add_argument("--reason")
    pool_batch_cancel = pool_sub.add_parser(
        "batch-cancel", help="Cancel labels given as ranges, e.g. 100-120,135"
    )
    pool_batch_cancel.add_argument("range_expr")
    pool_batch_cancel.add_argument("--reason")
    pool_list = pool_sub.add_parser("list", help="List pool records")
    pool_list.add_argument("--status", type=PoolStatus, choices=list(PoolStatus))
    pool_list.add_argument("--batch-no")
    pool_list.add_argument("--page", type=int, default=1)
    pool_list.add_argument("--page-size", type=int, default=50)
    pool_sub.add_parser("stats", help="Count pool records by status")

    task = subparsers.add_parser("print-task", help="Label print tasks")
    task_sub = task.add_subparsers(dest="task_command", required=True)
    task_create = task_sub.add_parser("create", help="Create a task with fresh labels")
    task_create.add_argument("name")
    task_create.add_argument("count", type=int)
    task_create.add_argument("--entity-type", type=EntityType, choices=list(EntityType))
    task_create.add_argument("--created-by")
    task_create.add_argument("--notes")
    task_export = task_sub.add_parser("export", help="Export labels still to print as CSV")
    task_export.add_argument("task_id")
    task_export.add_argument("--output", type=Path, help="Write to file instead of stdout")
    task_confirm = task_sub.add_parser("confirm", help="Confirm the labels were printed")
    task_confirm.add_argument("task_id")
    task_complete = task_sub.add_parser("complete", help="Complete a task")
    task_complete.add_argument("task_id")
    task_list = task_sub.add_parser("list", help="List print tasks")
    task_list.add_argument("--page", type=int, default=1)
    task_list.add_argument("--page-size", type=int, default=50)

    topology = subparsers.add_parser("topology", help="Panels reachable from a panel")
    topology.add_argument("panel_id")
    topology.add_argument("--depth", type=int, help="Cable hops to follow (defaults to config)")

    check = subparsers.add_parser("check", help="Check whether labels are still free")
    check.add_argument("range_expr", help="Labels as ranges, e.g. 100-120,135")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _coerce_arguments(
    args: argparse.Namespace,
    config: IdentityConfig,
    topology: TopologyConfig,
) -> None:
    """Convert identifiers in place so that bad input fails before any work is done."""

    for name in _UUID_ARGUMENTS:
        value = getattr(args, name, None)
        if isinstance(value, str):
            setattr(args, name, _parse_uuid(value))
    short_id = getattr(args, "short_id", None)
    if isinstance(short_id, str):
        args.short_id = parse_short_id(short_id, prefix=config.display_prefix)
    if args.command == "lookup":
        parse_short_id(args.code, prefix=config.display_prefix)
    range_expr = getattr(args, "range_expr", None)
    if range_expr is not None:
        args.short_ids = parse_range_expression(
            range_expr,
            prefix=config.display_prefix,
            max_size=config.max_range_size,
        )
    for name in ("count", "page", "page_size"):
        value = getattr(args, name, None)
        if value is not None and value < 1:
            raise ValueError(f"--{name.replace('_', '-')} must be positive")
    depth = getattr(args, "depth", None)
    if depth is not None and not 0 <= depth <= topology.max_depth:
        raise ValueError(f"--depth must be between 0 and {topology.max_depth}")


def _display(services: Services, short_id: int) -> str:
    config = services.identity_config
    return format_short_id(short_id, prefix=config.display_prefix, width=config.display_width)


def _lookup(args: argparse.Namespace, services: Services) -> None:
    result = scan_code(args.code, services=services)
    if result.owner is None:
        print(f"{result.display_id}: not allocated ({result.label_state})")
        return
    print(f"{result.display_id}: {result.owner.entity_type} {result.owner.entity_id}")
    for peer in sorted(result.peers, key=str):
        print(f"  peer port {peer}")


def _allocate(args: argparse.Namespace, services: Services) -> None:
    if args.short_id is not None:
        short_id = services.allocator.allocate_pinned(
            args.entity_type, args.entity_id, args.short_id
        )
    else:
        short_id = services.allocator.allocate(args.entity_type, args.entity_id)
    print(_display(services, short_id))


def _release(args: argparse.Namespace, services: Services) -> None:
    services.allocator.release(args.short_id)
    print(f"released {_display(services, args.short_id)}")


def _pool(args: argparse.Namespace, services: Services) -> None:
    ledger = services.pool
    if args.pool_command == "generate":
        short_ids = ledger.generate(args.count, args.batch_no)
        print(f"{_display(services, short_ids[0])}..{_display(services, short_ids[-1])}")
    elif args.pool_command == "cancel":
        ledger.cancel(args.short_id, args.reason)
        print(f"cancelled {_display(services, args.short_id)}")
    elif args.pool_command == "batch-cancel":
        result = ledger.batch_cancel(args.range_expr, args.reason)
        print(f"cancelled {result.success_count}, failed {result.failed_count}")
        for failure in result.failed_details:
            print(f"  {_display(services, failure.short_id)}: {failure.reason}")
    elif args.pool_command == "list":
        page = ledger.list_records(
            status=args.status,
            batch_no=args.batch_no,
            page=args.page,
            page_size=args.page_size,
        )
        for record in page.items:
            print(f"{_display(services, record.short_id)}\t{record.status}\t{record.batch_no}")
        print(f"page {page.page}/{page.pages} ({page.total} records)")
    elif args.pool_command == "stats":
        for status, total in ledger.stats().items():
            print(f"{status}\t{total}")


def _print_task(args: argparse.Namespace, services: Services) -> None:
    tasks = services.print_tasks
    if args.task_command == "create":
        task, short_ids = tasks.create(
            args.name,
            args.count,
            entity_type=args.entity_type,
            created_by=args.created_by,
            notes=args.notes,
        )
        print(
            f"{task.id}\t{_display(services, short_ids[0])}..{_display(services, short_ids[-1])}"
        )
    elif args.task_command == "export":
        payload = tasks.export_csv(args.task_id)
        if args.output is None:
            print(payload, end="")
        else:
            args.output.write_text(payload, encoding="utf-8")
            log.info("Wrote %s", args.output)
    elif args.task_command == "confirm":
        moved = tasks.confirm_printed(args.task_id)
        print(f"{moved} labels marked printed")
    elif args.task_command == "complete":
        task = tasks.complete(args.task_id)
        print(f"{task.id}\t{task.status}")
    elif args.task_command == "list":
        page = tasks.list_tasks(page=args.page, page_size=args.page_size)
        for item in page.items:
            print(f"{item.id}\t{item.name}\t{item.count}\t{item.status}")
        print(f"page {page.page}/{page.pages} ({page.total} tasks)")


def _topology(args: argparse.Namespace, services: Services) -> None:
    fragment = services.resolver.find_topology(args.panel_id, args.depth)
    for panel_id, depth in sorted(fragment.depth_by_panel.items(), key=lambda item: item[1]):
        panel = fragment.panels[panel_id]
        print(f"{depth}\t{panel_id}\t{panel.name or ''}")
    print(f"{len(fragment.panels)} panels, {len(fragment.edges)} cables")


def _check(args: argparse.Namespace, services: Services) -> None:
    report = services.allocator.check_labels(args.short_ids)
    for check in report.conflicts:
        print(f"{_display(services, check.short_id)}: {check.reason}")
    available = len(report.checks) - len(report.conflicts)
    print(f"{available} of {len(report.checks)} labels available")


_HANDLERS: dict[str, Callable[[argparse.Namespace, Services], None]] = {
    "lookup": _lookup,
    "allocate": _allocate,
    "release": _release,
    "pool": _pool,
    "print-task": _print_task,
    "topology": _topology,
    "check": _check,
}


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        configure_logging()
        parsed_args = _parse_args(args_list)
        identity_config = get_identity_config()
        topology_config = get_topology_config()
        _coerce_arguments(parsed_args, identity_config, topology_config)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        services = build_services(
            identity_config=identity_config, topology_config=topology_config
        )
        _HANDLERS[parsed_args.command](parsed_args, services)
    except PatchbayError as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
