"""Recursive mirror-in copy used to build the staging tree."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, Tuple

_LOGGER = logging.getLogger(__name__)


def normalise_relative(path: str | os.PathLike[str]) -> str:
    """Return ``path`` with ``/`` separators and no leading ``./`` or slash."""

    text = os.fspath(path).replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    return text.lstrip("/")


def parse_ignore_list(raw: str | None) -> Tuple[str, ...]:
    """Split a comma-separated ignore list into normalised prefixes."""

    if not raw:
        return ()
    prefixes = (normalise_relative(part.strip()) for part in raw.split(","))
    return tuple(prefix for prefix in prefixes if prefix)


def is_ignored(relative: str, ignore: Iterable[str]) -> bool:
    # Plain prefix match: "cache" also excludes "cache2/...".
    normalised = normalise_relative(relative)
    return any(normalised.startswith(prefix) for prefix in ignore)


def mirror_directory(
    source: Path,
    dest: Path,
    ignore: Iterable[str] = (),
    *,
    logger: logging.Logger | None = None,
) -> int:
    """Copy every file under ``source`` onto ``dest`` and return the file count.

    Existing destination files are overwritten. Files that only exist in
    ``dest`` are left alone. Entries whose relative path starts with one of
    the ``ignore`` prefixes are skipped together with their subtree.
    """

    log = logger or _LOGGER
    source = Path(source)
    dest = Path(dest)
    if not source.is_dir():
        raise FileNotFoundError(2, "Source directory not found", str(source))

    prefixes = tuple(normalise_relative(prefix) for prefix in ignore if prefix)
    return _mirror_into(source, source, dest, prefixes, log)


def _mirror_into(
    root: Path,
    current: Path,
    dest_root: Path,
    ignore: Tuple[str, ...],
    log: logging.Logger,
) -> int:
    copied = 0
    with os.scandir(current) as iterator:
        entries = sorted(iterator, key=lambda entry: entry.name)

    for entry in entries:
        path = Path(entry.path)
        relative = normalise_relative(path.relative_to(root))
        if is_ignored(relative, ignore):
            log.info("Ignored: %s", relative)
            continue

        target = dest_root.joinpath(*relative.split("/"))
        if entry.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            copied += _mirror_into(root, path, dest_root, ignore, log)
            continue

        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, target)
        log.info("Copied file: %s", target)
        copied += 1
    return copied


__all__ = [
    "is_ignored",
    "mirror_directory",
    "normalise_relative",
    "parse_ignore_list",
]
