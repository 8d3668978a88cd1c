from __future__ import annotations

import logging
from pathlib import Path

import pytest

from services.update.mirror import (
    is_ignored,
    mirror_directory,
    normalise_relative,
    parse_ignore_list,
)
from tests.unit.update_test_utils import read_tree, write_tree


def test_mirror_copies_source_and_keeps_destination_only_files(tmp_path: Path) -> None:
    source = write_tree(
        tmp_path / "source",
        {"a.txt": "new-a", "nested/deep/c.txt": "new-c"},
    )
    dest = write_tree(
        tmp_path / "dest",
        {"a.txt": "old-a", "b.txt": "keep", "nested/other.txt": "keep-too"},
    )

    copied = mirror_directory(source, dest)

    assert copied == 2
    assert read_tree(dest) == {
        "a.txt": "new-a",
        "b.txt": "keep",
        "nested/deep/c.txt": "new-c",
        "nested/other.txt": "keep-too",
    }


def test_mirror_creates_missing_destination(tmp_path: Path) -> None:
    source = write_tree(tmp_path / "source", {"dir/file.bin": "payload"})
    dest = tmp_path / "missing" / "dest"

    mirror_directory(source, dest)

    assert read_tree(dest) == {"dir/file.bin": "payload"}


def test_mirror_copies_empty_directories(tmp_path: Path) -> None:
    source = tmp_path / "source"
    (source / "empty" / "inner").mkdir(parents=True)
    dest = tmp_path / "dest"
    dest.mkdir()

    copied = mirror_directory(source, dest)

    assert copied == 0
    assert (dest / "empty" / "inner").is_dir()


def test_mirror_skips_ignored_prefixes(tmp_path: Path) -> None:
    source = write_tree(
        tmp_path / "source",
        {
            "cache/x.tmp": "tmp",
            "logs/debug/a.log": "debug",
            "logs/info.log": "info",
            "app.bin": "binary",
        },
    )
    dest = tmp_path / "dest"
    dest.mkdir()

    mirror_directory(source, dest, ["cache", "logs/debug"])

    assert read_tree(dest) == {"logs/info.log": "info", "app.bin": "binary"}
    assert not (dest / "cache").exists()
    assert not (dest / "logs" / "debug").exists()


def test_mirror_accepts_backslash_ignore_prefixes(tmp_path: Path) -> None:
    source = write_tree(tmp_path / "source", {"logs/debug/a.log": "x", "keep.txt": "y"})
    dest = tmp_path / "dest"

    mirror_directory(source, dest, parse_ignore_list("logs\\debug"))

    assert read_tree(dest) == {"keep.txt": "y"}


def test_mirror_logs_copies_and_ignores(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="services.update.mirror")
    source = write_tree(tmp_path / "source", {"cache/x.tmp": "tmp", "app.bin": "binary"})
    dest = tmp_path / "dest"

    mirror_directory(source, dest, ["cache"])

    messages = [record.getMessage() for record in caplog.records]
    assert "Ignored: cache" in messages
    assert any(message.startswith("Copied file: ") and "app.bin" in message for message in messages)


def test_mirror_raises_when_source_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        mirror_directory(tmp_path / "missing", tmp_path / "dest")


def test_parse_ignore_list_trims_and_normalises() -> None:
    assert parse_ignore_list(" cache , logs\\debug,,./tmp ") == ("cache", "logs/debug", "tmp")
    assert parse_ignore_list(None) == ()
    assert parse_ignore_list("") == ()


def test_is_ignored_uses_plain_prefix_matching() -> None:
    assert is_ignored("cache/x.tmp", ["cache"])
    assert is_ignored("cache2/x.tmp", ["cache"])
    assert not is_ignored("logs/info.log", ["logs/debug"])
    assert is_ignored("logs\\debug\\a.log", ["logs/debug"])


def test_normalise_relative_strips_leading_markers() -> None:
    assert normalise_relative("./a/b") == "a/b"
    assert normalise_relative("\\a\\b") == "a/b"
    assert normalise_relative(Path("a") / "b") == "a/b"
