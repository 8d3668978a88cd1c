"""Constants shared across the update service modules."""

from __future__ import annotations

STAGING_SUFFIX = "_new"
BACKUP_SUFFIX = "_old"
UPDATE_FAILURE_MARKER_SUFFIX = ".update_failed.json"

DEFAULT_LOG_NAME = "updater.log"

DEFAULT_MAX_WAIT_SECONDS = 5.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.5
DEFAULT_OBSERVATION_WINDOW_SECONDS = 3.0
DEFAULT_RENAME_ATTEMPTS = 8
DEFAULT_RENAME_RETRY_DELAY_SECONDS = 0.25
MAX_RENAME_RETRY_DELAY_SECONDS = 4.0

EXIT_OK = 0
EXIT_LOGGING_FAILED = 1
EXIT_USAGE = 2
EXIT_STAGING_FAILED = 3
EXIT_SWAP_FAILED = 4

LOG_FILE_ENV = "UPDATER_LOG_FILE"
APP_VERSION_ENV = "UPDATER_APP_VERSION"
