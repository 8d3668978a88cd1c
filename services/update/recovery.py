"""Recovery after interrupted runs and the failure marker carried between runs."""

from __future__ import annotations

import datetime
import json
import logging
from pathlib import Path
from typing import Any

from services.update.constants import UPDATE_FAILURE_MARKER_SUFFIX
from services.update.models import StagingLayout

_LOGGER = logging.getLogger(__name__)


def describe_leftovers(layout: StagingLayout) -> list[Path]:
    """Return staging or backup directories left behind by an earlier run."""

    return [path for path in (layout.staging, layout.backup) if path.exists()]


def restore_interrupted_swap(
    layout: StagingLayout, *, logger: logging.Logger | None = None
) -> bool:
    """Move an orphaned backup back into place when ``live`` is missing.

    A run killed between the two swap renames leaves only the backup behind.
    Restoring it first lets the next run carry those files forward instead of
    deleting them as a stale backup.
    """

    log = logger or _LOGGER
    if layout.live.exists() or not layout.backup.is_dir():
        return False

    log.warning(
        "Live directory %s is missing; restoring backup from %s",
        layout.live,
        layout.backup,
    )
    layout.backup.rename(layout.live)
    return True


def get_failure_marker_path(live: Path) -> Path:
    """Return the sentinel file path used to record update failures."""

    live = Path(live)
    return live.parent / f"{live.name}{UPDATE_FAILURE_MARKER_SUFFIX}"


def write_failure_marker(
    live: Path,
    reason: str,
    advice: str,
    *,
    logger: logging.Logger | None = None,
) -> Path:
    """Record why the last update did not verify, beside ``live``.

    The next run reports and removes the marker. ``OSError`` propagates so the
    caller decides whether a missing marker matters.
    """

    log = logger or _LOGGER
    marker_path = get_failure_marker_path(live)
    payload = {
        "reason": reason,
        "advice": advice,
        "recorded_at": datetime.datetime.now().isoformat(timespec="seconds"),
    }
    marker_path.parent.mkdir(parents=True, exist_ok=True)
    marker_path.write_text(json.dumps(payload), encoding="utf-8")
    log.info("Recorded update failure marker at %s", marker_path)
    return marker_path


def clear_failure_marker(live: Path, *, logger: logging.Logger | None = None) -> None:
    _safe_remove(get_failure_marker_path(live), logger or _LOGGER)


def consume_update_failure_notice(
    live: Path, *, logger: logging.Logger | None = None
) -> tuple[str, str] | None:
    """Return the recorded failure reason and advice, removing the marker."""

    log = logger or _LOGGER
    marker_path = get_failure_marker_path(live)
    if not marker_path.exists():
        return None

    try:
        payload = json.loads(marker_path.read_text(encoding="utf-8-sig"))
    except (OSError, json.JSONDecodeError):
        log.debug("Unable to parse update failure marker at %s", marker_path, exc_info=True)
        _safe_remove(marker_path, log)
        return None

    if not isinstance(payload, dict):
        _safe_remove(marker_path, log)
        return None

    reason = _coerce_text(payload.get("reason"), default="Unknown error.")
    advice = _coerce_text(payload.get("advice"), default="Please try again later.")

    _safe_remove(marker_path, log)
    return reason, advice


def _coerce_text(value: Any, *, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def _safe_remove(path: Path, log: logging.Logger) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError:
        log.warning("Unable to remove update failure marker at %s", path, exc_info=True)


__all__ = [
    "clear_failure_marker",
    "consume_update_failure_notice",
    "describe_leftovers",
    "get_failure_marker_path",
    "restore_interrupted_swap",
    "write_failure_marker",
]
