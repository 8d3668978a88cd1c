"""Terminate running application processes before files are replaced."""

from __future__ import annotations

import logging
import os
import time
from typing import Callable, Iterable, Protocol, Sequence

import psutil

from services.update.models import ProcessTarget, ProcessTerminationError

_LOGGER = logging.getLogger(__name__)


class ProcessTable(Protocol):
    """Protocol describing access to the operating system's process list."""

    def list_running(self) -> Sequence[ProcessTarget]:
        """Return a snapshot of the running processes."""

    def terminate(self, pid: int) -> None:
        """Forcefully stop ``pid``, raising ``ProcessTerminationError`` on failure."""


class PsutilProcessTable:
    """Process table backed by ``psutil``."""

    def __init__(self, *, exclude_pids: Iterable[int] | None = None) -> None:
        self._exclude = set(exclude_pids) if exclude_pids is not None else {os.getpid()}

    def list_running(self) -> list[ProcessTarget]:
        targets: list[ProcessTarget] = []
        for process in psutil.process_iter(attrs=["pid", "name"]):
            try:
                pid = process.info["pid"]
                name = process.info["name"]
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
            if not name or pid in self._exclude:
                continue
            targets.append(ProcessTarget(pid=pid, name=name))
        return targets

    def terminate(self, pid: int) -> None:
        try:
            psutil.Process(pid).kill()
        except psutil.NoSuchProcess:
            return
        except psutil.Error as exc:
            raise ProcessTerminationError(f"Unable to kill process {pid}: {exc}") from exc
        except OSError as exc:
            raise ProcessTerminationError(
                f"Unable to kill process {pid}: {exc.strerror or exc}"
            ) from exc


def normalise_process_names(names: Iterable[str]) -> frozenset[str]:
    return frozenset(name.strip().lower() for name in names if name and name.strip())


class ProcessReaper:
    """Kill every process matching a set of names and wait for them to exit."""

    def __init__(
        self,
        table: ProcessTable,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        self._table = table
        self._sleep = sleep
        self._clock = clock
        self._logger = logger or _LOGGER

    def reap(
        self, names: Iterable[str], max_wait: float, poll_interval: float
    ) -> list[ProcessTarget]:
        """Terminate matching processes and return those still alive at timeout.

        Failures to signal a process and timeouts are logged only; the caller
        always gets to continue with the update.
        """

        targets = normalise_process_names(names)
        if not targets:
            self._logger.info("No process names provided, skipping kill step.")
            return []

        matched = self._matching(targets)
        if not matched:
            self._logger.info("No running process matches %s", ", ".join(sorted(targets)))
            return []

        for process in matched:
            self._logger.info("Killing process %s (pid %s)", process.name, process.pid)
            try:
                self._table.terminate(process.pid)
            except ProcessTerminationError as exc:
                self._logger.warning(
                    "Failed to send kill signal to %s (pid %s): %s",
                    process.name,
                    process.pid,
                    exc,
                )

        started = self._clock()
        while True:
            alive = self._matching(targets)
            if not alive:
                self._logger.info("All target processes have exited.")
                return []
            if self._clock() - started >= max_wait:
                self._logger.warning(
                    "Timeout waiting for processes to exit, continue anyway: %s",
                    _format_targets(alive),
                )
                return alive
            self._logger.info("Waiting for processes to exit: %s", _format_targets(alive))
            self._sleep(poll_interval)

    def _matching(self, targets: frozenset[str]) -> list[ProcessTarget]:
        return [
            process
            for process in self._table.list_running()
            if process.name.strip().lower() in targets
        ]


def _format_targets(targets: Sequence[ProcessTarget]) -> str:
    return ", ".join(f"{target.name} (pid {target.pid})" for target in targets)


__all__ = [
    "ProcessReaper",
    "ProcessTable",
    "PsutilProcessTable",
    "normalise_process_names",
]
