from __future__ import annotations

import json
import os
import re
import shutil
import signal
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from app import cli
from services.update.recovery import get_failure_marker_path
from tests.unit.update_test_utils import FakeProcessTable, write_executable

pytestmark = pytest.mark.skipif(
    os.name == "nt", reason="scenarios launch POSIX shell scripts"
)

scenarios("features/updater.feature")


@dataclass
class UpdaterWorld:
    root: Path
    table: FakeProcessTable = field(default_factory=FakeProcessTable)
    exit_code: int | None = None

    @property
    def input_dir(self) -> Path:
        return self.root / "input"

    @property
    def output_dir(self) -> Path:
        return self.root / "output"

    @property
    def app_path(self) -> Path:
        return self.root / "bin" / "app"

    @property
    def log_path(self) -> Path:
        return self.root / "updater.log"

    def write(self, base: Path, name: str, content: str) -> None:
        path = base / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def config_path(self) -> Path:
        path = self.root / "config.json"
        path.write_text(
            json.dumps(
                {
                    "reaper": {"max_wait_seconds": 0.5, "poll_interval_seconds": 0.05},
                    "launch": {"observation_window_seconds": 1.0},
                }
            ),
            encoding="utf-8",
        )
        return path

    def kill_launched_app(self) -> None:
        if not self.log_path.exists():
            return
        for pid in re.findall(r"Main app started \(pid (\d+)\)", self.log_path.read_text(encoding="utf-8")):
            try:
                os.kill(int(pid), signal.SIGKILL)
            except ProcessLookupError:
                pass


@pytest.fixture
def world(tmp_path: Path):
    state = UpdaterWorld(root=tmp_path)
    yield state
    state.kill_launched_app()


@given(parsers.parse('the input directory contains "{name}" with "{content}"'))
def input_file(world: UpdaterWorld, name: str, content: str) -> None:
    world.write(world.input_dir, name, content)


@given(parsers.parse('the output directory contains "{name}" with "{content}"'))
def output_file(world: UpdaterWorld, name: str, content: str) -> None:
    world.write(world.output_dir, name, content)


@given(parsers.parse('a process named "{name}" is running'))
def running_process(world: UpdaterWorld, name: str) -> None:
    world.table.processes[1000 + len(world.table.processes)] = name


@given("the input directory has been deleted")
def delete_input(world: UpdaterWorld) -> None:
    shutil.rmtree(world.input_dir)


@given("the application keeps running after launch")
def long_running_app(world: UpdaterWorld) -> None:
    write_executable(world.app_path, "exec sleep 30")


@given("the application exits immediately after launch")
def crashing_app(world: UpdaterWorld) -> None:
    write_executable(world.app_path, "exit 1")


def _run(world: UpdaterWorld, *extra: str) -> None:
    argv = [
        "--ps",
        "myapp.exe",
        "--input",
        str(world.input_dir),
        "--output",
        str(world.output_dir),
        "--app",
        str(world.app_path),
        "--log",
        str(world.log_path),
        "--config",
        str(world.config_path()),
        *extra,
    ]
    world.exit_code = cli.main(argv, process_table=world.table)


@when("the updater runs")
def run_updater(world: UpdaterWorld) -> None:
    _run(world)


@when(parsers.parse('the updater runs with ignore list "{ignore}"'))
def run_updater_with_ignore(world: UpdaterWorld, ignore: str) -> None:
    _run(world, "--ignore", ignore)


@then(parsers.parse("the exit code is {code:d}"))
def check_exit_code(world: UpdaterWorld, code: int) -> None:
    assert world.exit_code == code


@then(parsers.parse('the running process "{name}" was terminated'))
def check_terminated(world: UpdaterWorld, name: str) -> None:
    assert world.table.terminated
    assert name not in world.table.processes.values()


@then(parsers.parse('the output file "{name}" contains "{content}"'))
def check_output_file(world: UpdaterWorld, name: str, content: str) -> None:
    assert (world.output_dir / name).read_text(encoding="utf-8") == content


@then(parsers.parse('the backup file "{name}" contains "{content}"'))
def check_backup_file(world: UpdaterWorld, name: str, content: str) -> None:
    backup = world.root / "output_old"
    assert (backup / name).read_text(encoding="utf-8") == content


@then(parsers.parse('the output path "{name}" does not exist'))
def check_output_absent(world: UpdaterWorld, name: str) -> None:
    assert not (world.output_dir / name).exists()


@then("the input directory has been removed")
def check_input_removed(world: UpdaterWorld) -> None:
    assert not world.input_dir.exists()


@then("the input directory is still present")
def check_input_present(world: UpdaterWorld) -> None:
    assert world.input_dir.is_dir()


@then("the backup directory has been removed")
def check_backup_removed(world: UpdaterWorld) -> None:
    assert not (world.root / "output_old").exists()


@then("the staging directory does not exist")
def check_staging_absent(world: UpdaterWorld) -> None:
    assert not (world.root / "output_new").exists()


@then("an update failure marker has been recorded")
def check_failure_marker(world: UpdaterWorld) -> None:
    marker = get_failure_marker_path(world.output_dir)
    payload = json.loads(marker.read_text(encoding="utf-8"))
    assert "exited immediately" in payload["reason"]
