"""Sequence an update run: reap, stage, swap, launch, then clean up or keep evidence."""

from __future__ import annotations

import logging
import shutil
from functools import partial
from typing import Mapping

from services.update.constants import (
    DEFAULT_MAX_WAIT_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
)
from services.update.launcher import LaunchProbe
from services.update.models import LaunchOutcome, UpdateReport, UpdateRequest, UpdateStage
from services.update.policy import Operation, run_best_effort
from services.update.processes import ProcessReaper
from services.update.recovery import (
    clear_failure_marker,
    consume_update_failure_notice,
    describe_leftovers,
    write_failure_marker,
)
from services.update.staging import StagingSwap

_LOGGER = logging.getLogger(__name__)


_ALLOWED_TRANSITIONS: Mapping[UpdateStage, frozenset[UpdateStage]] = {
    UpdateStage.START: frozenset({UpdateStage.PROCESSES_REAPED}),
    UpdateStage.PROCESSES_REAPED: frozenset({UpdateStage.UPDATE_STAGED}),
    UpdateStage.UPDATE_STAGED: frozenset({UpdateStage.SWAPPED}),
    UpdateStage.SWAPPED: frozenset({UpdateStage.LAUNCHED}),
    UpdateStage.LAUNCHED: frozenset({UpdateStage.CLEANED_UP, UpdateStage.BACKUP_PRESERVED}),
    UpdateStage.CLEANED_UP: frozenset({UpdateStage.FINISHED}),
    UpdateStage.BACKUP_PRESERVED: frozenset({UpdateStage.FINISHED}),
    UpdateStage.FINISHED: frozenset(),
}


class UpdateOrchestrator:
    """Run the update stages in order for a single :class:`UpdateRequest`.

    ``StagingError`` and ``SwapError`` propagate to the caller. An application
    that fails the launch check is not an error: the run finishes normally
    but leaves the input directory and the backup in place.
    """

    def __init__(
        self,
        request: UpdateRequest,
        *,
        reaper: ProcessReaper,
        swap: StagingSwap,
        probe: LaunchProbe,
        max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self._request = request
        self._reaper = reaper
        self._swap = swap
        self._probe = probe
        self._max_wait = max_wait
        self._poll_interval = poll_interval
        self._logger = logger or _LOGGER
        self._report = UpdateReport()

    @property
    def report(self) -> UpdateReport:
        return self._report

    @property
    def stage(self) -> UpdateStage:
        return self._report.final_stage

    def run(self) -> UpdateReport:
        request = self._request
        layout = self._swap.layout

        for leftover in describe_leftovers(layout):
            self._logger.info("Found leftover directory from a previous run: %s", leftover)
        notice = consume_update_failure_notice(layout.live, logger=self._logger)
        if notice is not None:
            reason, advice = notice
            self._logger.warning("Previous update did not verify: %s %s", reason, advice)

        survivors = self._reaper.reap(
            request.process_names, self._max_wait, self._poll_interval
        )
        self._report.survivors.extend(survivors)
        self._advance(UpdateStage.PROCESSES_REAPED)

        self._swap.stage(request.input_dir, request.ignore)
        self._advance(UpdateStage.UPDATE_STAGED)

        self._swap.swap()
        self._advance(UpdateStage.SWAPPED)

        outcome = self._probe.launch_and_probe(request.app_path)
        self._report.outcome = outcome
        self._advance(UpdateStage.LAUNCHED)

        if outcome.is_healthy:
            self._clean_up()
            self._advance(UpdateStage.CLEANED_UP)
        else:
            self._preserve_evidence(outcome)
            self._advance(UpdateStage.BACKUP_PRESERVED)

        self._advance(UpdateStage.FINISHED)
        self._logger.info("Updater finished")
        return self._report

    def _clean_up(self) -> None:
        input_dir = self._request.input_dir
        self._logger.info("Removing input directory %s", input_dir)
        self._report.input_removed = run_best_effort(
            Operation.REMOVE_INPUT, shutil.rmtree, input_dir, logger=self._logger
        )
        self._report.backup_removed = self._swap.discard_backup()
        clear_failure_marker(self._swap.layout.live, logger=self._logger)

    def _preserve_evidence(self, outcome: LaunchOutcome) -> None:
        layout = self._swap.layout
        self._logger.warning(
            "Update applied but %s; keeping %s and %s for diagnosis",
            outcome.describe(),
            self._request.input_dir,
            layout.backup,
        )
        advice = (
            f"The previous files were kept in {layout.backup} and the update files in "
            f"{self._request.input_dir}."
        )
        run_best_effort(
            Operation.WRITE_FAILURE_MARKER,
            partial(write_failure_marker, logger=self._logger),
            layout.live,
            outcome.describe(),
            advice,
            logger=self._logger,
        )

    def _advance(self, stage: UpdateStage) -> None:
        current = self._report.final_stage
        if stage not in _ALLOWED_TRANSITIONS[current]:
            raise RuntimeError(f"Illegal update stage transition {current.value} -> {stage.value}")
        self._logger.debug("Update stage %s -> %s", current.value, stage.value)
        self._report.stages.append(stage)


__all__ = ["UpdateOrchestrator"]
