"""Start the updated application and check that it stays up."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from pathlib import Path
from typing import Any, Callable

from services.update.constants import DEFAULT_OBSERVATION_WINDOW_SECONDS
from services.update.models import LaunchOutcome

_LOGGER = logging.getLogger(__name__)


def detached_popen_kwargs() -> dict[str, Any]:
    """Return ``Popen`` keyword arguments that detach the child from the updater."""

    popen_kwargs: dict[str, Any] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }
    if os.name == "nt":  # pragma: no cover - exercised on Windows
        creationflags = getattr(subprocess, "DETACHED_PROCESS", 0) | getattr(
            subprocess, "CREATE_NEW_PROCESS_GROUP", 0
        )
        if creationflags:
            popen_kwargs["creationflags"] = creationflags
    else:
        popen_kwargs["start_new_session"] = True
    return popen_kwargs


class LaunchProbe:
    """Launch an executable and classify it after a short observation window.

    This is a liveness heuristic: a child that is still running when the
    window closes counts as healthy. No handshake with the application takes
    place.
    """

    def __init__(
        self,
        *,
        observation_window: float = DEFAULT_OBSERVATION_WINDOW_SECONDS,
        popen: Callable[..., Any] = subprocess.Popen,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self._observation_window = max(0.0, float(observation_window))
        self._popen = popen
        self._sleep = sleep
        self._logger = logger or _LOGGER

    def launch_and_probe(self, exe: Path) -> LaunchOutcome:
        exe = Path(exe)
        if not exe.exists():
            self._logger.warning("Main app not found at %s, skip restart", exe)
            return LaunchOutcome.launch_failed(f"Executable not found: {exe}")

        self._logger.info("Restarting main app %s", exe)
        try:
            process = self._popen(
                [str(exe)],
                cwd=str(exe.parent),
                **detached_popen_kwargs(),
            )
        except OSError as exc:
            self._logger.error("Failed to launch %s: %s", exe, exc.strerror or exc)
            return LaunchOutcome.launch_failed(str(exc.strerror or exc))

        self._logger.info(
            "Main app started (pid %s); observing for %.1f s",
            process.pid,
            self._observation_window,
        )
        self._sleep(self._observation_window)
        exit_code = process.poll()
        if exit_code is not None:
            self._logger.warning(
                "Main app exited immediately with status %s", exit_code
            )
            return LaunchOutcome.exited_immediately(exit_code, process.pid)

        self._logger.info("Main app is still running after %.1f s", self._observation_window)
        return LaunchOutcome.still_running(process.pid)


__all__ = ["LaunchProbe", "detached_popen_kwargs"]
