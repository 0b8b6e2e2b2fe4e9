from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from patchbay.app import Services, build_services
from patchbay.config import IdentityConfig, TopologyConfig
from patchbay.domain.model import EntityType, PoolStatus
from patchbay.ui import cli
from tests.helpers.cabling import build_ring, endpoints_for, make_panel, make_port

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from patchbay.adapters.sqlalchemy.unit_of_work import (
        SqlAlchemyConnectivityUnitOfWork,
        SqlAlchemyIdentityUnitOfWork,
    )


@pytest.fixture
def services(
    monkeypatch: pytest.MonkeyPatch,
    identity_unit_of_work: Callable[[], SqlAlchemyIdentityUnitOfWork],
    connectivity_unit_of_work: Callable[[], SqlAlchemyConnectivityUnitOfWork],
) -> Services:
    wired = build_services(
        identity_unit_of_work_factory=identity_unit_of_work,
        connectivity_unit_of_work_factory=connectivity_unit_of_work,
        identity_config=IdentityConfig(),
        topology_config=TopologyConfig(default_depth=2, max_depth=4),
    )

    def fake_build_services(**_: object) -> Services:
        return wired

    monkeypatch.setattr(cli, "build_services", fake_build_services)
    monkeypatch.setenv("PATCHBAY_TOPOLOGY_DEFAULT_DEPTH", "2")
    monkeypatch.setenv("PATCHBAY_TOPOLOGY_MAX_DEPTH", "4")
    return wired


def test_allocate_then_lookup(services: Services, capsys: pytest.CaptureFixture[str]) -> None:
    entity_id = uuid4()

    cli.main(["allocate", "port", str(entity_id)])
    cli.main(["lookup", "E-00001"])

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "E-00001"
    assert out[1] == f"E-00001: port {entity_id}"


def test_allocate_pinned(services: Services, capsys: pytest.CaptureFixture[str]) -> None:
    entity_id = uuid4()

    cli.main(["allocate", "cabinet", str(entity_id), "--short-id", "E-00040"])

    assert capsys.readouterr().out.strip() == "E-00040"
    assert services.allocator.current_sequence_value() == 41


def test_lookup_reports_port_peers(services: Services, capsys: pytest.CaptureFixture[str]) -> None:
    port_a, port_b = make_port(make_panel()), make_port(make_panel())
    services.graph.connect(uuid4(), endpoints_for([port_a, port_b]))
    services.allocator.allocate(EntityType.PORT, port_a.id)

    cli.main(["lookup", "1"])

    out = capsys.readouterr().out
    assert f"peer port {port_b.id}" in out


def test_lookup_unowned_label(services: Services, capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["lookup", "E-00007"])

    assert capsys.readouterr().out.strip() == "E-00007: not allocated (unknown)"


def test_release(services: Services, capsys: pytest.CaptureFixture[str]) -> None:
    short_id = services.allocator.allocate(EntityType.ROOM, uuid4())

    cli.main(["release", str(short_id)])

    assert capsys.readouterr().out.strip() == "released E-00001"
    assert services.allocator.lookup(short_id) is None


def test_pool_commands(services: Services, capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["pool", "generate", "4", "--batch-no", "b1"])
    cli.main(["pool", "cancel", "2", "--reason", "torn"])
    cli.main(["pool", "batch-cancel", "1-3"])
    cli.main(["pool", "stats"])

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "E-00001..E-00004"
    assert out[1] == "cancelled E-00002"
    assert out[2] == "cancelled 2, failed 1"
    assert out[3].startswith("  E-00002: ")
    assert "cancelled\t3" in out
    assert "generated\t1" in out
    assert services.pool.stats()[PoolStatus.CANCELLED] == 3


def test_pool_list(services: Services, capsys: pytest.CaptureFixture[str]) -> None:
    services.pool.generate(3, "b1")

    cli.main(["pool", "list", "--status", "generated", "--page-size", "2"])

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "E-00001\tgenerated\tb1"
    assert out[-1] == "page 1/2 (3 records)"


def test_print_task_flow(
    services: Services, capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    cli.main(["print-task", "create", "row 4", "2", "--entity-type", "port"])
    task_id = capsys.readouterr().out.split("\t")[0]
    target = tmp_path / "labels.csv"

    cli.main(["print-task", "export", task_id, "--output", str(target)])
    cli.main(["print-task", "confirm", task_id])
    cli.main(["print-task", "complete", task_id])
    cli.main(["print-task", "list"])

    lines = target.read_text(encoding="utf-8").splitlines()
    assert lines[1] == "1,E-00001,generated,row 4,port,row 4"
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "2 labels marked printed"
    assert out[1] == f"{task_id}\tcompleted"
    assert out[2] == f"{task_id}\trow 4\t2\tcompleted"


def test_topology(services: Services, capsys: pytest.CaptureFixture[str]) -> None:
    panels, _ = build_ring(services.graph, 6)

    cli.main(["topology", str(panels[0].id), "--depth", "1"])

    out = capsys.readouterr().out.splitlines()
    assert out[0] == f"0\t{panels[0].id}\tP0"
    assert out[-1] == "3 panels, 2 cables"


def test_check(services: Services, capsys: pytest.CaptureFixture[str]) -> None:
    services.allocator.allocate(EntityType.ROOM, uuid4())

    cli.main(["check", "1-3"])

    out = capsys.readouterr().out.splitlines()
    assert out == ["E-00001: allocated to room", "2 of 3 labels available"]


@pytest.mark.parametrize(
    "argv",
    [
        ["allocate", "port", "not-a-uuid"],
        ["release", "E-abc"],
        ["check", "5-1"],
        ["lookup", "E-abc"],
        ["lookup", "\u00b2"],
        ["pool", "batch-cancel", "5-1"],
        ["pool", "generate", "0"],
        ["topology", "00000000-0000-0000-0000-000000000001", "--depth", "9"],
    ],
)
def test_invalid_arguments_exit_2(services: Services, argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 2


def test_domain_error_exits_1(services: Services) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["pool", "cancel", "99"])

    assert excinfo.value.code == 1


def test_conflicting_pin_exits_1(services: Services) -> None:
    services.allocator.allocate(EntityType.ROOM, uuid4())

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["allocate", "port", str(uuid4()), "--short-id", "1"])

    assert excinfo.value.code == 1
