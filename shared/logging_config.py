"""Central logging configuration for the updater.

Every event is written as a single ``[YYYY-MM-DD HH:MM:SS] message`` line to
both standard output and an append-only log file.  When no explicit path is
given the file is created beside the running executable, or wherever the
``UPDATER_LOG_FILE`` environment variable points.

Handlers installed here are tagged so repeated configuration is a no-op and
tests can remove exactly what was added.
"""

from __future__ import annotations

import logging
import os
import sys
from enum import Enum
from pathlib import Path

from services.update.constants import DEFAULT_LOG_NAME, LOG_FILE_ENV

_CONFIGURED = False
_LOG_PATH: Path | None = None
_HANDLER_TAG = "_updater_logging_handler"
_LINE_FORMAT = "[%(asctime)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogVerbosity(str, Enum):
    """Verbosity levels supported by the updater log."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    VERBOSE = "verbose"


_VERBOSITY_LEVELS: dict[LogVerbosity, int] = {
    LogVerbosity.ERROR: logging.ERROR,
    LogVerbosity.WARNING: logging.WARNING,
    LogVerbosity.INFO: logging.INFO,
    LogVerbosity.VERBOSE: logging.DEBUG,
}


def resolve_default_log_path() -> Path:
    """Return the log file used when ``--log`` is not supplied."""

    env_file = os.environ.get(LOG_FILE_ENV)
    if env_file:
        return Path(env_file).expanduser()

    if getattr(sys, "frozen", False):
        executable = Path(sys.executable)
    else:
        executable = Path(sys.argv[0]) if sys.argv and sys.argv[0] else Path.cwd() / "updater"
    return executable.resolve().parent / DEFAULT_LOG_NAME


def configure_updater_logging(
    log_path: Path | None = None,
    verbosity: LogVerbosity | str = LogVerbosity.INFO,
) -> Path:
    """Attach file and stdout handlers to the root logger.

    Raises ``OSError`` when the log file cannot be opened.  Subsequent calls
    return the already configured path without adding handlers.
    """

    global _CONFIGURED, _LOG_PATH

    if _CONFIGURED and _LOG_PATH is not None:
        return _LOG_PATH

    if isinstance(verbosity, str):
        try:
            verbosity = LogVerbosity(verbosity.lower())
        except ValueError as exc:
            raise ValueError(f"Unsupported log verbosity: {verbosity}") from exc

    path = Path(log_path) if log_path is not None else resolve_default_log_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(_LINE_FORMAT, datefmt=_DATE_FORMAT)
    level = _VERBOSITY_LEVELS[verbosity]

    file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    setattr(file_handler, _HANDLER_TAG, True)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    setattr(stream_handler, _HANDLER_TAG, True)

    root = logging.getLogger()
    root.setLevel(min(root.level or logging.WARNING, level))
    root.addHandler(file_handler)
    root.addHandler(stream_handler)

    _CONFIGURED = True
    _LOG_PATH = path
    return path


def _reset_for_tests() -> None:
    """Remove handlers installed by :func:`configure_updater_logging`."""

    global _CONFIGURED, _LOG_PATH

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            try:
                handler.close()
            except Exception:  # pragma: no cover - close should rarely fail
                pass

    _CONFIGURED = False
    _LOG_PATH = None


__all__ = [
    "LogVerbosity",
    "configure_updater_logging",
    "resolve_default_log_path",
]
