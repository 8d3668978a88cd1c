from __future__ import annotations

from importlib import metadata, resources

import pytest

from app import version as version_module
from app.version import UNKNOWN_VERSION, get_app_version


@pytest.fixture(autouse=True)
def _fresh_version_cache():
    get_app_version.cache_clear()
    yield
    get_app_version.cache_clear()


def _no_distribution(name: str) -> str:
    raise metadata.PackageNotFoundError(name)


def test_environment_override_wins_and_drops_tag_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UPDATER_APP_VERSION", "v1.2.3")

    assert get_app_version() == "1.2.3"


def test_installed_distribution_version_is_used(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("UPDATER_APP_VERSION", raising=False)
    monkeypatch.setattr(version_module.metadata, "version", lambda name: "2.0.1")

    assert get_app_version() == "2.0.1"


def test_bundled_version_file_covers_frozen_builds(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("UPDATER_APP_VERSION", raising=False)
    monkeypatch.setattr(version_module.metadata, "version", _no_distribution)
    expected = resources.files("app").joinpath("VERSION").read_text(encoding="utf-8").strip()

    assert expected
    assert get_app_version() == expected


def test_unknown_version_when_nothing_resolves(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("UPDATER_APP_VERSION", raising=False)
    monkeypatch.setattr(
        version_module, "_SOURCES", (lambda: None, lambda: "  ", version_module._from_environment)
    )

    assert get_app_version() == UNKNOWN_VERSION
