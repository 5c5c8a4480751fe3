"""!
@brief Entry point for the ``sensor-janitor`` cleanup CLI.
@details Parses arguments, opens the per-run audit log, enforces the
administrative precondition before anything is touched, runs the confirmed
cleanup phases and prints the summary block to ``stdout``.
"""
from __future__ import annotations

import argparse
import datetime
import logging
import os
import pathlib
import platform
import sys
from typing import Iterable, Optional

from . import cleanup, config, elevation, logging_ext, safety, ui, version
from .confirm import Confirmer

EXIT_OK = 0
EXIT_PRECONDITION = 1
EXIT_ABORTED = 2
EXIT_COMPLETED_WITH_ERRORS = 3
EXIT_FAILURE = 4

LOGDIR_ENV = "SENSOR_JANITOR_LOGDIR"


def build_arg_parser() -> argparse.ArgumentParser:
    """!
    @brief Create the argument parser for the cleanup tool.
    """

    parser = argparse.ArgumentParser(
        prog="sensor-janitor",
        description="Remove residual sensor services, registry entries and folders.",
    )
    metadata = version.build_info()
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"{metadata['version']} ({metadata['build']})",
    )
    parser.add_argument("-y", "--yes", action="store_true", help="Answer 'yes' to every phase confirmation.")
    parser.add_argument("--dry-run", action="store_true", help="Report intended actions without modifying the system.")
    parser.add_argument("--config", metavar="FILE", help="JSON file overriding the built-in sensor profile.")
    parser.add_argument("--logdir", metavar="DIR", help="Directory for the audit and JSONL logs.")
    parser.add_argument("--quiet", action="store_true", help="Do not echo audit entries to the console.")
    parser.add_argument("--json", action="store_true", help="Mirror structured events to stdout.")
    parser.add_argument("--verbose", action="store_true", help="Include debug entries in the logs.")
    return parser


def _resolve_log_directory(candidate: Optional[str]) -> pathlib.Path:
    """!
    @brief Pick the log directory: ``--logdir``, then the environment, then the
    directory the tool was launched from.
    """

    chosen = candidate or os.environ.get(LOGDIR_ENV)
    if chosen:
        return pathlib.Path(chosen).expanduser().resolve()
    script = sys.argv[0] if sys.argv and sys.argv[0] else ""
    if script:
        return pathlib.Path(script).expanduser().resolve().parent
    return pathlib.Path.cwd()


def _bootstrap_logging(
    args: argparse.Namespace, started_at: datetime.datetime
) -> tuple[logging.Logger, logging.Logger]:
    logdir = _resolve_log_directory(getattr(args, "logdir", None))
    return logging_ext.setup_logging(
        logdir,
        started_at=started_at,
        echo=not getattr(args, "quiet", False),
        json_to_stdout=getattr(args, "json", False),
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.INFO,
        metadata={
            "user": elevation.current_username(),
            "dry_run": bool(getattr(args, "dry_run", False)),
        },
    )


def main(argv: Optional[Iterable[str]] = None) -> int:
    """!
    @brief Run the cleanup tool.
    @returns ``0`` on a clean completion, ``3`` when some resources failed,
    ``2`` when a confirmation was declined, ``1`` when the run could not
    start and ``4`` when the cleanup stopped on an unexpected fault.
    """

    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    started_at = datetime.datetime.now()

    try:
        human_log, machine_log = _bootstrap_logging(args, started_at)
    except OSError as exc:
        print(f"Unable to open the audit log: {exc}", file=sys.stderr)
        return EXIT_PRECONDITION

    try:
        try:
            profile = config.load_profile(args.config)
        except config.ConfigError as exc:
            human_log.error("Configuration error: %s", exc)
            machine_log.error("config_error", extra={"event": "config_error", "error": str(exc)})
            return EXIT_PRECONDITION

        try:
            safety.evaluate_runtime_environment(
                is_admin=elevation.is_admin(),
                os_system=platform.system(),
                dry_run=args.dry_run,
            )
        except (elevation.PrivilegeError, RuntimeError) as exc:
            human_log.error("Precondition failed: %s", exc)
            machine_log.error("precondition_failed", extra={"event": "precondition_failed", "error": str(exc)})
            return EXIT_PRECONDITION

        if args.dry_run:
            human_log.info("Dry-run mode: no changes will be made")

        try:
            summary = cleanup.run_cleanup(profile, confirm=Confirmer(assume_yes=args.yes), dry_run=args.dry_run)
        except Exception as exc:
            human_log.error("Cleanup stopped unexpectedly: %s", exc)
            machine_log.error("cleanup_failure", extra={"event": "cleanup_failure", "error": repr(exc)})
            return EXIT_FAILURE
        ui.print_summary(summary)

        paths = logging_ext.get_log_paths()
        if paths is not None:
            print(f"Audit log: {paths[0]}")

        if not summary.completed:
            return EXIT_ABORTED
        if summary.errors:
            return EXIT_COMPLETED_WITH_ERRORS
        return EXIT_OK
    finally:
        logging_ext.shutdown_logging()


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
