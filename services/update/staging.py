"""Replace a live directory tree through a staging copy and a backup rename."""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Callable, Iterable

from services.update.constants import (
    DEFAULT_RENAME_ATTEMPTS,
    DEFAULT_RENAME_RETRY_DELAY_SECONDS,
    MAX_RENAME_RETRY_DELAY_SECONDS,
)
from services.update.mirror import mirror_directory
from services.update.models import StagingError, StagingLayout, SwapError
from services.update.policy import Operation, describe_os_error, run_best_effort
from services.update.recovery import restore_interrupted_swap

_LOGGER = logging.getLogger(__name__)


class StagingSwap:
    """Build ``<live>_new``, move ``live`` to ``<live>_old`` and promote the new tree.

    ``live`` never points at a partially written tree: all copying happens in
    the staging directory and ``live`` only changes through two renames.
    """

    def __init__(
        self,
        layout: StagingLayout,
        *,
        rename_attempts: int = DEFAULT_RENAME_ATTEMPTS,
        rename_retry_delay: float = DEFAULT_RENAME_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self._layout = layout
        self._rename_attempts = max(1, int(rename_attempts))
        self._rename_retry_delay = max(0.0, float(rename_retry_delay))
        self._sleep = sleep
        self._logger = logger or _LOGGER

    @property
    def layout(self) -> StagingLayout:
        return self._layout

    def apply_update(self, incoming: Path, ignore: Iterable[str] = ()) -> None:
        self.stage(incoming, ignore)
        self.swap()

    def stage(self, incoming: Path, ignore: Iterable[str] = ()) -> None:
        """Build the staging tree from the live files overlaid with ``incoming``.

        Raises :class:`StagingError` on any filesystem failure. The live
        directory is untouched in that case and the partial staging tree is
        removed.
        """

        layout = self._layout
        try:
            restore_interrupted_swap(layout, logger=self._logger)
        except OSError as exc:
            raise StagingError(
                f"Failed to restore backup {layout.backup}: {describe_os_error(exc)}"
            ) from exc

        self._prepare_staging_directory()
        try:
            if layout.live.exists():
                self._logger.info("Copying current files from %s to %s", layout.live, layout.staging)
                self._mirror(Operation.MIRROR_LIVE, layout.live, ())
            self._logger.info("Copying update files from %s to %s", incoming, layout.staging)
            self._mirror(Operation.MIRROR_INCOMING, Path(incoming), tuple(ignore))
        except StagingError:
            self._discard_staging()
            raise

        self._logger.info("File copy completed successfully")

    def swap(self) -> None:
        """Move ``live`` aside as the backup and promote the staging tree."""

        layout = self._layout
        if layout.backup.exists():
            self._logger.info("Removing previous backup at %s", layout.backup)
            try:
                shutil.rmtree(layout.backup)
            except OSError as exc:
                raise StagingError(
                    f"Failed to {Operation.REMOVE_STALE_BACKUP.value} {layout.backup}: "
                    f"{describe_os_error(exc)}"
                ) from exc

        if layout.live.exists():
            self._logger.info("Moving %s to backup at %s", layout.live, layout.backup)
            self._rename(Operation.RENAME_LIVE_TO_BACKUP, layout.live, layout.backup)

        self._logger.info("Moving staged update from %s to %s", layout.staging, layout.live)
        self._rename(Operation.RENAME_STAGING_TO_LIVE, layout.staging, layout.live)
        self._logger.info("Update promoted to %s", layout.live)

    def discard_backup(self) -> bool:
        backup = self._layout.backup
        if not backup.exists():
            return True
        self._logger.info("Removing backup at %s", backup)
        return run_best_effort(
            Operation.REMOVE_BACKUP, shutil.rmtree, backup, logger=self._logger
        )

    def _prepare_staging_directory(self) -> None:
        staging = self._layout.staging
        if staging.exists():
            self._logger.info("Removing stale staging directory %s", staging)
            try:
                shutil.rmtree(staging)
            except OSError as exc:
                raise StagingError(
                    f"Failed to {Operation.REMOVE_STALE_STAGING.value} {staging}: "
                    f"{describe_os_error(exc)}"
                ) from exc
        try:
            staging.mkdir(parents=True)
        except OSError as exc:
            raise StagingError(
                f"Failed to {Operation.CREATE_STAGING.value} {staging}: {describe_os_error(exc)}"
            ) from exc

    def _mirror(self, operation: Operation, source: Path, ignore: tuple[str, ...]) -> None:
        try:
            count = mirror_directory(source, self._layout.staging, ignore, logger=self._logger)
        except OSError as exc:
            raise StagingError(
                f"Failed to {operation.value} from {source}: {describe_os_error(exc)}"
            ) from exc
        self._logger.debug("Copied %s files from %s", count, source)

    def _discard_staging(self) -> None:
        staging = self._layout.staging
        if not staging.exists():
            return
        self._logger.info("Removing staged update at %s after failure", staging)
        try:
            shutil.rmtree(staging)
        except OSError as exc:
            self._logger.warning(
                "Failed to remove staged update %s: %s", staging, describe_os_error(exc)
            )

    def _rename(self, operation: Operation, source: Path, destination: Path) -> None:
        delay = self._rename_retry_delay
        for attempt in range(1, self._rename_attempts + 1):
            try:
                source.rename(destination)
                return
            except OSError as exc:
                if attempt == self._rename_attempts:
                    raise SwapError(
                        f"Failed to {operation.value} ({source} -> {destination}): "
                        f"{describe_os_error(exc)}"
                    ) from exc
                wait = min(delay, MAX_RENAME_RETRY_DELAY_SECONDS)
                self._logger.warning(
                    "Attempt %s to %s failed: %s. Retrying in %.2f s.",
                    attempt,
                    operation.value,
                    describe_os_error(exc),
                    wait,
                )
                self._sleep(wait)
                delay *= 2


__all__ = ["StagingSwap"]
