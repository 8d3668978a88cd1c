"""Which update failures abort the run and which are only logged."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Mapping

_LOGGER = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    FATAL = "fatal"
    LOG_AND_CONTINUE = "log_and_continue"


class Operation(str, Enum):
    LOGGER_INIT = "initialise logging"
    TERMINATE_PROCESS = "terminate process"
    REAP_TIMEOUT = "wait for processes to exit"
    CREATE_STAGING = "create staging directory"
    REMOVE_STALE_STAGING = "remove stale staging directory"
    MIRROR_LIVE = "copy live files into staging"
    MIRROR_INCOMING = "copy incoming files into staging"
    REMOVE_STALE_BACKUP = "remove stale backup directory"
    RENAME_LIVE_TO_BACKUP = "move live directory to backup"
    RENAME_STAGING_TO_LIVE = "promote staging directory"
    LAUNCH_APP = "launch application"
    REMOVE_INPUT = "remove input directory"
    REMOVE_BACKUP = "remove backup directory"
    WRITE_FAILURE_MARKER = "write update failure marker"


FAILURE_POLICY: Mapping[Operation, FailurePolicy] = {
    Operation.LOGGER_INIT: FailurePolicy.FATAL,
    Operation.TERMINATE_PROCESS: FailurePolicy.LOG_AND_CONTINUE,
    Operation.REAP_TIMEOUT: FailurePolicy.LOG_AND_CONTINUE,
    Operation.CREATE_STAGING: FailurePolicy.FATAL,
    Operation.REMOVE_STALE_STAGING: FailurePolicy.FATAL,
    Operation.MIRROR_LIVE: FailurePolicy.FATAL,
    Operation.MIRROR_INCOMING: FailurePolicy.FATAL,
    Operation.REMOVE_STALE_BACKUP: FailurePolicy.FATAL,
    Operation.RENAME_LIVE_TO_BACKUP: FailurePolicy.FATAL,
    Operation.RENAME_STAGING_TO_LIVE: FailurePolicy.FATAL,
    Operation.LAUNCH_APP: FailurePolicy.LOG_AND_CONTINUE,
    Operation.REMOVE_INPUT: FailurePolicy.LOG_AND_CONTINUE,
    Operation.REMOVE_BACKUP: FailurePolicy.LOG_AND_CONTINUE,
    Operation.WRITE_FAILURE_MARKER: FailurePolicy.LOG_AND_CONTINUE,
}


def is_fatal(operation: Operation) -> bool:
    return FAILURE_POLICY[operation] is FailurePolicy.FATAL


def run_best_effort(
    operation: Operation,
    func: Callable[..., Any],
    *args: Any,
    logger: logging.Logger | None = None,
) -> bool:
    """Run ``func`` and log an ``OSError`` instead of raising it.

    Only operations whose policy is ``LOG_AND_CONTINUE`` may be run this way.
    Returns ``True`` when ``func`` completed without error.
    """

    if is_fatal(operation):
        raise ValueError(f"Operation '{operation.value}' is fatal and cannot be run best-effort")

    log = logger or _LOGGER
    try:
        func(*args)
    except OSError as exc:
        log.warning("Failed to %s: %s", operation.value, describe_os_error(exc))
        return False
    return True


def describe_os_error(exc: OSError) -> str:
    detail = exc.strerror or str(exc)
    if exc.filename:
        return f"{detail} ({exc.filename})"
    return detail


__all__ = [
    "FAILURE_POLICY",
    "FailurePolicy",
    "describe_os_error",
    "Operation",
    "is_fatal",
    "run_best_effort",
]
