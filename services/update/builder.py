"""Helpers for constructing the update orchestrator."""

from __future__ import annotations

import logging
from typing import Any, Callable

from app.config import UpdaterConfig, get_updater_config
from services.update.launcher import LaunchProbe
from services.update.models import StagingLayout, UpdateRequest
from services.update.orchestrator import UpdateOrchestrator
from services.update.processes import ProcessReaper, ProcessTable, PsutilProcessTable
from services.update.staging import StagingSwap


_LOGGER = logging.getLogger(__name__)


def build_update_orchestrator(
    request: UpdateRequest,
    config: UpdaterConfig | None = None,
    *,
    process_table: ProcessTable | None = None,
    popen: Callable[..., Any] | None = None,
    logger: logging.Logger | None = None,
) -> UpdateOrchestrator:
    """Construct an :class:`UpdateOrchestrator` wired with the configured timings."""

    config = config or get_updater_config()
    logger = logger or _LOGGER

    reaper = ProcessReaper(process_table or PsutilProcessTable(), logger=logger)
    swap = StagingSwap(
        StagingLayout.for_live(request.output_dir),
        rename_attempts=config.swap.rename_attempts,
        rename_retry_delay=config.swap.rename_retry_delay_seconds,
        logger=logger,
    )
    probe_kwargs: dict[str, Any] = {}
    if popen is not None:
        probe_kwargs["popen"] = popen
    probe = LaunchProbe(
        observation_window=config.launch.observation_window_seconds,
        logger=logger,
        **probe_kwargs,
    )
    logger.debug(
        "Reaper timing: max_wait=%.1fs poll_interval=%.1fs; observation window %.1fs",
        config.reaper.max_wait_seconds,
        config.reaper.poll_interval_seconds,
        config.launch.observation_window_seconds,
    )
    return UpdateOrchestrator(
        request,
        reaper=reaper,
        swap=swap,
        probe=probe,
        max_wait=config.reaper.max_wait_seconds,
        poll_interval=config.reaper.poll_interval_seconds,
        logger=logger,
    )


__all__ = ["build_update_orchestrator"]
