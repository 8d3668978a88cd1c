"""Public API for the update service package."""

from __future__ import annotations

from services.update.constants import (
    BACKUP_SUFFIX,
    DEFAULT_MAX_WAIT_SECONDS,
    DEFAULT_OBSERVATION_WINDOW_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    EXIT_LOGGING_FAILED,
    EXIT_OK,
    EXIT_STAGING_FAILED,
    EXIT_SWAP_FAILED,
    EXIT_USAGE,
    STAGING_SUFFIX,
    UPDATE_FAILURE_MARKER_SUFFIX,
)
from services.update.launcher import LaunchProbe
from services.update.mirror import is_ignored, mirror_directory, parse_ignore_list
from services.update.models import (
    LaunchOutcome,
    LaunchStatus,
    ProcessTarget,
    ProcessTerminationError,
    StagingError,
    StagingLayout,
    SwapError,
    UpdateError,
    UpdateReport,
    UpdateRequest,
    UpdateStage,
)
from services.update.orchestrator import UpdateOrchestrator
from services.update.processes import ProcessReaper, ProcessTable, PsutilProcessTable
from services.update.staging import StagingSwap

__all__ = [
    "BACKUP_SUFFIX",
    "DEFAULT_MAX_WAIT_SECONDS",
    "DEFAULT_OBSERVATION_WINDOW_SECONDS",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "EXIT_LOGGING_FAILED",
    "EXIT_OK",
    "EXIT_STAGING_FAILED",
    "EXIT_SWAP_FAILED",
    "EXIT_USAGE",
    "STAGING_SUFFIX",
    "UPDATE_FAILURE_MARKER_SUFFIX",
    "LaunchOutcome",
    "LaunchProbe",
    "LaunchStatus",
    "ProcessReaper",
    "ProcessTable",
    "ProcessTarget",
    "ProcessTerminationError",
    "PsutilProcessTable",
    "StagingError",
    "StagingLayout",
    "StagingSwap",
    "SwapError",
    "UpdateError",
    "UpdateOrchestrator",
    "UpdateReport",
    "UpdateRequest",
    "UpdateStage",
    "is_ignored",
    "mirror_directory",
    "parse_ignore_list",
]
