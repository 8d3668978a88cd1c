"""Updater timing configuration loaded from JSON resources."""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from math import isfinite
from pathlib import Path
from typing import Any, Mapping

from services.update.constants import (
    DEFAULT_MAX_WAIT_SECONDS,
    DEFAULT_OBSERVATION_WINDOW_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RENAME_ATTEMPTS,
    DEFAULT_RENAME_RETRY_DELAY_SECONDS,
)

_CONFIG_RESOURCE = "updater.json"
_UPDATER_CONFIG_CACHE: UpdaterConfig | None = None


@dataclass(frozen=True)
class ReaperSettings:
    """Bounded wait used while terminating the running application."""

    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS


@dataclass(frozen=True)
class LaunchSettings:
    observation_window_seconds: float = DEFAULT_OBSERVATION_WINDOW_SECONDS


@dataclass(frozen=True)
class SwapSettings:
    """Retry behaviour for the directory renames."""

    rename_attempts: int = DEFAULT_RENAME_ATTEMPTS
    rename_retry_delay_seconds: float = DEFAULT_RENAME_RETRY_DELAY_SECONDS


@dataclass(frozen=True)
class UpdaterConfig:
    """Structured configuration values for the updater."""

    reaper: ReaperSettings
    launch: LaunchSettings
    swap: SwapSettings


def get_updater_config() -> UpdaterConfig:
    """Return the cached updater configuration."""

    global _UPDATER_CONFIG_CACHE
    if _UPDATER_CONFIG_CACHE is None:
        _UPDATER_CONFIG_CACHE = load_updater_config()
    return _UPDATER_CONFIG_CACHE


def reset_updater_config_cache() -> None:
    """Reset the cached configuration for subsequent reloads."""

    global _UPDATER_CONFIG_CACHE
    _UPDATER_CONFIG_CACHE = None


def load_updater_config(path: str | Path | None = None) -> UpdaterConfig:
    """Load configuration from ``path`` or the bundled JSON resource."""

    data = _read_config_data(path)
    return UpdaterConfig(
        reaper=_parse_reaper_section(_section(data, "reaper")),
        launch=_parse_launch_section(_section(data, "launch")),
        swap=_parse_swap_section(_section(data, "swap")),
    )


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any] | None:
    section = data.get(name) if isinstance(data, Mapping) else None
    return section if isinstance(section, Mapping) else None


def _read_config_data(path: str | Path | None) -> Mapping[str, Any]:
    if path is not None:
        return _load_json_from_path(Path(path).expanduser())
    return _load_default_config_data()


def _load_json_from_path(path: Path) -> Mapping[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    return _parse_json(raw)


def _load_default_config_data() -> Mapping[str, Any]:
    try:
        resource = resources.files(__package__).joinpath(_CONFIG_RESOURCE)
        raw = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return {}
    return _parse_json(raw)


def _parse_json(raw: str) -> Mapping[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, Mapping):
        return parsed
    return {}


def _parse_reaper_section(section: Mapping[str, Any] | None) -> ReaperSettings:
    if section is None:
        return ReaperSettings()
    return ReaperSettings(
        max_wait_seconds=_coerce_seconds(
            section.get("max_wait_seconds"), default=DEFAULT_MAX_WAIT_SECONDS
        ),
        poll_interval_seconds=_coerce_seconds(
            section.get("poll_interval_seconds"),
            default=DEFAULT_POLL_INTERVAL_SECONDS,
            allow_zero=False,
        ),
    )


def _parse_launch_section(section: Mapping[str, Any] | None) -> LaunchSettings:
    if section is None:
        return LaunchSettings()
    return LaunchSettings(
        observation_window_seconds=_coerce_seconds(
            section.get("observation_window_seconds"),
            default=DEFAULT_OBSERVATION_WINDOW_SECONDS,
        )
    )


def _parse_swap_section(section: Mapping[str, Any] | None) -> SwapSettings:
    if section is None:
        return SwapSettings()
    return SwapSettings(
        rename_attempts=_coerce_positive_int(
            section.get("rename_attempts"), default=DEFAULT_RENAME_ATTEMPTS
        ),
        rename_retry_delay_seconds=_coerce_seconds(
            section.get("rename_retry_delay_seconds"),
            default=DEFAULT_RENAME_RETRY_DELAY_SECONDS,
        ),
    )


def _coerce_positive_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return default
    else:
        return default
    if not isfinite(number):
        return default
    candidate = int(number)
    if candidate <= 0:
        return default
    return candidate


def _coerce_seconds(value: Any, *, default: float, allow_zero: bool = True) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = float(value)
    elif isinstance(value, str):
        try:
            candidate = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not isfinite(candidate) or candidate < 0:
        return default
    if candidate == 0 and not allow_zero:
        return default
    return candidate


__all__ = [
    "LaunchSettings",
    "ReaperSettings",
    "SwapSettings",
    "UpdaterConfig",
    "get_updater_config",
    "load_updater_config",
    "reset_updater_config_cache",
]
