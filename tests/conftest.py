from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_path() -> None:
    """Guarantee the repository root is discoverable for absolute imports."""

    root = Path(__file__).resolve().parent.parent
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_ensure_project_root_on_path()

from app.config import reset_updater_config_cache  # noqa: E402
from shared import logging_config  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_updater_state(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Keep log handlers and cached configuration from leaking between tests."""

    log_dir = tmp_path_factory.mktemp("updater_logs")
    monkeypatch.setenv("UPDATER_LOG_FILE", str(log_dir / "updater.log"))
    logging_config._reset_for_tests()
    reset_updater_config_cache()

    yield

    logging_config._reset_for_tests()
    reset_updater_config_cache()
