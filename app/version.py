"""Version reported by ``updater --version`` and the start-up log line."""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import metadata, resources

from services.update.constants import APP_VERSION_ENV

DISTRIBUTION_NAME = "resource-updater"
UNKNOWN_VERSION = "0.0.0-dev"


def _strip_tag_prefix(raw: str) -> str:
    text = raw.strip()
    return text[1:] if text[:1] in ("v", "V") else text


def _from_environment() -> str | None:
    return os.environ.get(APP_VERSION_ENV) or None


def _from_distribution() -> str | None:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return None


def _from_bundled_file() -> str | None:
    # Frozen builds carry app/VERSION but no distribution metadata.
    try:
        return resources.files("app").joinpath("VERSION").read_text(encoding="utf-8")
    except (FileNotFoundError, ModuleNotFoundError):
        return None


_SOURCES = (_from_environment, _from_distribution, _from_bundled_file)


@lru_cache(maxsize=1)
def get_app_version() -> str:
    """Return the first non-empty version from the environment override,
    the installed distribution or the bundled ``VERSION`` file."""

    for source in _SOURCES:
        raw = source()
        if raw and raw.strip():
            return _strip_tag_prefix(raw)
    return UNKNOWN_VERSION


__all__ = ["DISTRIBUTION_NAME", "UNKNOWN_VERSION", "get_app_version"]
