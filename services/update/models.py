"""Data models used by the update service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Tuple

from services.update.constants import BACKUP_SUFFIX, STAGING_SUFFIX
from services.update.mirror import parse_ignore_list


class UpdateError(RuntimeError):
    """Raised when an update cannot be applied."""


class StagingError(UpdateError):
    """Raised when the staging tree cannot be built.

    The live directory has not been touched when this is raised.
    """


class SwapError(UpdateError):
    """Raised when promoting the staging tree fails after the pivot rename.

    The live directory may be renamed aside and needs manual recovery.
    """


class ProcessTerminationError(UpdateError):
    """Raised by a process table when a kill signal cannot be delivered."""


def split_comma_list(raw: str | None) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class UpdateRequest:
    """Validated description of a single update run."""

    process_names: Tuple[str, ...]
    input_dir: Path
    output_dir: Path
    app_path: Path
    ignore: Tuple[str, ...] = ()
    log_path: Path | None = None

    @classmethod
    def from_cli_values(
        cls,
        ps: str,
        input: str | Path,
        output: str | Path,
        app: str | Path,
        ignore: str | None = None,
        log: str | Path | None = None,
    ) -> "UpdateRequest":
        return cls(
            process_names=split_comma_list(ps),
            input_dir=Path(input),
            output_dir=Path(output),
            app_path=Path(app),
            ignore=parse_ignore_list(ignore),
            log_path=Path(log) if log else None,
        )


@dataclass(frozen=True)
class StagingLayout:
    """Sibling directories used while replacing ``live``."""

    live: Path
    staging: Path
    backup: Path

    @classmethod
    def for_live(cls, live: Path) -> "StagingLayout":
        # Siblings need a real final component, so "." and "x/.." are expanded first.
        live = Path(os.path.normpath(Path(live).absolute()))
        return cls(
            live=live,
            staging=live.with_name(f"{live.name}{STAGING_SUFFIX}"),
            backup=live.with_name(f"{live.name}{BACKUP_SUFFIX}"),
        )


@dataclass(frozen=True)
class ProcessTarget:
    """A running process matched by name."""

    pid: int
    name: str


class LaunchStatus(str, Enum):
    STILL_RUNNING = "still_running"
    EXITED_IMMEDIATELY = "exited_immediately"
    LAUNCH_FAILED = "launch_failed"


@dataclass(frozen=True)
class LaunchOutcome:
    """Result of starting the application and observing it briefly."""

    status: LaunchStatus
    exit_code: int | None = None
    error: str | None = None
    pid: int | None = None

    @classmethod
    def still_running(cls, pid: int | None) -> "LaunchOutcome":
        return cls(LaunchStatus.STILL_RUNNING, pid=pid)

    @classmethod
    def exited_immediately(cls, exit_code: int, pid: int | None = None) -> "LaunchOutcome":
        return cls(LaunchStatus.EXITED_IMMEDIATELY, exit_code=exit_code, pid=pid)

    @classmethod
    def launch_failed(cls, error: str) -> "LaunchOutcome":
        return cls(LaunchStatus.LAUNCH_FAILED, error=error)

    @property
    def is_healthy(self) -> bool:
        return self.status is LaunchStatus.STILL_RUNNING

    def describe(self) -> str:
        if self.status is LaunchStatus.STILL_RUNNING:
            return f"application is running (pid {self.pid})"
        if self.status is LaunchStatus.EXITED_IMMEDIATELY:
            return f"application exited immediately with status {self.exit_code}"
        return f"application could not be launched: {self.error}"


class UpdateStage(str, Enum):
    START = "start"
    PROCESSES_REAPED = "processes_reaped"
    UPDATE_STAGED = "update_staged"
    SWAPPED = "swapped"
    LAUNCHED = "launched"
    CLEANED_UP = "cleaned_up"
    BACKUP_PRESERVED = "backup_preserved"
    FINISHED = "finished"


@dataclass
class UpdateReport:
    """Summary of what an update run did."""

    stages: list[UpdateStage] = field(default_factory=lambda: [UpdateStage.START])
    survivors: list[ProcessTarget] = field(default_factory=list)
    outcome: LaunchOutcome | None = None
    input_removed: bool = False
    backup_removed: bool = False

    @property
    def final_stage(self) -> UpdateStage:
        return self.stages[-1]


__all__ = [
    "LaunchOutcome",
    "LaunchStatus",
    "ProcessTarget",
    "ProcessTerminationError",
    "StagingError",
    "StagingLayout",
    "SwapError",
    "UpdateError",
    "UpdateReport",
    "UpdateRequest",
    "UpdateStage",
    "split_comma_list",
]
