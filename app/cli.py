"""Stop an application, replace its resource directory and relaunch it."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from app.config import get_updater_config, load_updater_config
from app.version import get_app_version
from services.update.builder import build_update_orchestrator
from services.update.constants import (
    EXIT_LOGGING_FAILED,
    EXIT_OK,
    EXIT_STAGING_FAILED,
    EXIT_SWAP_FAILED,
)
from services.update.models import StagingError, SwapError, UpdateRequest
from services.update.processes import ProcessTable
from shared.logging_config import LogVerbosity, configure_updater_logging

_LOGGER = logging.getLogger("updater")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="updater", description=__doc__)
    parser.add_argument(
        "--ps",
        required=True,
        help="Comma-separated process names to terminate before updating (e.g. 'app.exe,helper.exe').",
    )
    parser.add_argument(
        "--input",
        required=True,
        type=Path,
        help="Directory containing the new files.",
    )
    parser.add_argument(
        "--output",
        required=True,
        type=Path,
        help="Live resource directory to update.",
    )
    parser.add_argument(
        "--app",
        required=True,
        type=Path,
        help="Executable to relaunch after the update.",
    )
    parser.add_argument(
        "--log",
        type=Path,
        default=None,
        help="Log file path. Defaults to updater.log beside the updater executable.",
    )
    parser.add_argument(
        "--ignore",
        default=None,
        help="Comma-separated relative path prefixes (relative to --input) to skip.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON file overriding the bundled timing configuration.",
    )
    parser.add_argument(
        "--verbosity",
        choices=[level.value for level in LogVerbosity],
        default=LogVerbosity.INFO.value,
        help="Minimum severity written to the log.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {get_app_version()}",
    )
    return parser.parse_args(argv)


def main(
    argv: Sequence[str] | None = None,
    *,
    process_table: ProcessTable | None = None,
) -> int:
    args = parse_args(argv)

    try:
        log_path = configure_updater_logging(args.log, args.verbosity)
    except OSError as exc:
        print(f"Failed to initialize logger: {exc}", file=sys.stderr)
        return EXIT_LOGGING_FAILED

    request = UpdateRequest.from_cli_values(
        ps=args.ps,
        input=args.input,
        output=args.output,
        app=args.app,
        ignore=args.ignore,
        log=log_path,
    )
    config = load_updater_config(args.config) if args.config else get_updater_config()

    _LOGGER.info("Updater started (version %s)", get_app_version())
    _LOGGER.info("App path: %s", request.app_path)
    _LOGGER.info("Process name(s): %s", args.ps)
    _LOGGER.info("Input dir: %s", request.input_dir)
    _LOGGER.info("Output dir: %s", request.output_dir)
    if request.ignore:
        _LOGGER.info("Ignore list: %s", ", ".join(request.ignore))

    orchestrator = build_update_orchestrator(
        request, config, process_table=process_table, logger=_LOGGER
    )
    try:
        orchestrator.run()
    except StagingError as exc:
        _LOGGER.error("Update failed: %s. Live files left unchanged.", exc)
        return EXIT_STAGING_FAILED
    except SwapError as exc:
        _LOGGER.error("Update failed: %s. Manual recovery required.", exc)
        return EXIT_SWAP_FAILED
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
