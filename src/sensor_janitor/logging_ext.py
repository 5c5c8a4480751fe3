"""!
@brief Audit logging helpers for Sensor Janitor.
@details Implements a dual-stream pipeline: a human-readable audit file with
one ``<timestamp> [<LEVEL>] <message>`` line per entry and a JSONL twin that
carries structured ``event`` payloads for automation. Both file names embed the
run start timestamp, are opened in append mode and are never rotated, so every
run produces its own immutable record.
"""
from __future__ import annotations

import datetime as _dt
import json
import logging
import sys
import uuid
from pathlib import Path
from typing import Dict, Iterable, Mapping, Tuple

from . import constants, version

HUMAN_LOGGER_NAME = "sensor_janitor.human"
"""!
@brief Logger name for the human-readable audit stream.
"""

MACHINE_LOGGER_NAME = "sensor_janitor.machine"
"""!
@brief Logger name for JSONL telemetry output.
"""

AUDIT_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
AUDIT_DATEFMT = "%Y-%m-%dT%H:%M:%S"

_STANDARD_RECORD_KEYS: Dict[str, None] = dict.fromkeys(
    (
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "asctime",
        "channel",
        "taskName",
    )
)

_CURRENT_LOG_PATHS: Tuple[Path, Path] | None = None


class _ChannelFilter(logging.Filter):
    """!
    @brief Inject a fixed ``channel`` attribute on log records.
    """

    def __init__(self, channel: str) -> None:
        super().__init__()
        self._channel = channel

    def filter(self, record: logging.LogRecord) -> bool:
        record.channel = self._channel
        return True


class _JsonLineFormatter(logging.Formatter):
    """!
    @brief Format ``LogRecord`` instances as single-line JSON objects.
    @details Standard metadata (timestamp, level, logger, message) is merged
    with any ``extra`` attributes supplied by callers. Values that are not JSON
    serializable are coerced to their ``repr``.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - concise override
        moment = _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc)
        payload: Dict[str, object] = {
            "timestamp": moment.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", "machine"),
        }
        payload.update(_extract_extras(record))
        try:
            return json.dumps(payload, ensure_ascii=False)
        except TypeError:
            sanitized = {key: _coerce_json(value) for key, value in payload.items()}
            return json.dumps(sanitized, ensure_ascii=False)


def _extract_extras(record: logging.LogRecord) -> Dict[str, object]:
    extras: Dict[str, object] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_RECORD_KEYS:
            continue
        extras[key] = value
    return extras


def _coerce_json(value: object) -> object:
    try:
        json.dumps(value)
    except TypeError:
        return repr(value)
    return value


def _configure_logger(logger: logging.Logger, handlers_to_add: Iterable[logging.Handler]) -> None:
    """!
    @brief Reset a logger and attach the supplied, already formatted handlers.
    """

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for flt in list(logger.filters):
        logger.removeFilter(flt)
    for handler in handlers_to_add:
        logger.addHandler(handler)
    logger.propagate = False


def build_log_paths(root_dir: Path, started_at: _dt.datetime) -> Tuple[Path, Path]:
    """!
    @brief Compute the audit and JSONL file paths for a run.
    @details The stem is ``sensor-janitor-<YYYYmmdd-HHMMSS>``. When a file with
    that stem already exists (two runs inside the same second) a numeric suffix
    is appended so an earlier run's log is never appended to.
    """

    stem = f"{constants.LOG_FILE_PREFIX}-{started_at:%Y%m%d-%H%M%S}"
    candidate = stem
    counter = 1
    while (root_dir / f"{candidate}.log").exists() or (root_dir / f"{candidate}.jsonl").exists():
        candidate = f"{stem}-{counter}"
        counter += 1
    return root_dir / f"{candidate}.log", root_dir / f"{candidate}.jsonl"


def setup_logging(
    root_dir: Path,
    *,
    started_at: _dt.datetime | None = None,
    echo: bool = True,
    json_to_stdout: bool = False,
    level: int = logging.INFO,
    metadata: Mapping[str, object] | None = None,
) -> Tuple[logging.Logger, logging.Logger]:
    """!
    @brief Set up the human audit logger and the machine event logger.
    @param root_dir Directory receiving the log files; created when missing.
    @param started_at Run start moment used in file names (defaults to now).
    @param echo Mirror human entries to ``stderr``.
    @param json_to_stdout Mirror machine events to ``stdout``.
    @param level Minimum level for both loggers.
    @param metadata Extra fields recorded in the ``run_start`` event.
    @returns Tuple of ``(human_logger, machine_logger)``.
    """

    global _CURRENT_LOG_PATHS

    root_dir.mkdir(parents=True, exist_ok=True)
    moment = started_at or _dt.datetime.now()
    human_path, machine_path = build_log_paths(root_dir, moment)
    _CURRENT_LOG_PATHS = (human_path, machine_path)

    human_logger = logging.getLogger(HUMAN_LOGGER_NAME)
    machine_logger = logging.getLogger(MACHINE_LOGGER_NAME)
    human_logger.setLevel(level)
    machine_logger.setLevel(level)

    audit_formatter = logging.Formatter(AUDIT_FORMAT, datefmt=AUDIT_DATEFMT)
    human_file = logging.FileHandler(human_path, mode="a", encoding="utf-8")
    human_file.setFormatter(audit_formatter)
    human_handlers: list[logging.Handler] = [human_file]
    if echo:
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        human_handlers.append(console)

    json_formatter = _JsonLineFormatter()
    machine_file = logging.FileHandler(machine_path, mode="a", encoding="utf-8")
    machine_file.setFormatter(json_formatter)
    machine_handlers: list[logging.Handler] = [machine_file]
    if json_to_stdout:
        stdout_handler = logging.StreamHandler(stream=sys.stdout)
        stdout_handler.setFormatter(json_formatter)
        machine_handlers.append(stdout_handler)

    _configure_logger(human_logger, human_handlers)
    _configure_logger(machine_logger, machine_handlers)
    human_logger.addFilter(_ChannelFilter("human"))
    machine_logger.addFilter(_ChannelFilter("machine"))

    _emit_run_metadata(human_logger, machine_logger, moment, metadata)

    return human_logger, machine_logger


def setup_console_logging(*, level: int = logging.WARNING) -> logging.Logger:
    """!
    @brief Route the human logger to ``stderr`` only.
    @details Used by the password-expiry lookup, which keeps no audit file
    unless a log directory is requested.
    """

    human_logger = logging.getLogger(HUMAN_LOGGER_NAME)
    human_logger.setLevel(level)
    console = logging.StreamHandler(stream=sys.stderr)
    console.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    _configure_logger(human_logger, [console])
    _configure_logger(logging.getLogger(MACHINE_LOGGER_NAME), [logging.NullHandler()])
    return human_logger


def get_human_logger() -> logging.Logger:
    """!
    @brief Retrieve the configured human-readable audit logger.
    """

    return logging.getLogger(HUMAN_LOGGER_NAME)


def get_machine_logger() -> logging.Logger:
    """!
    @brief Retrieve the configured machine/JSON logger.
    """

    return logging.getLogger(MACHINE_LOGGER_NAME)


def get_log_paths() -> Tuple[Path, Path] | None:
    """!
    @brief Return the ``(audit, jsonl)`` paths of the current run, if configured.
    """

    return _CURRENT_LOG_PATHS


def shutdown_logging() -> None:
    """!
    @brief Flush and detach every handler owned by the two loggers.
    """

    for name in (HUMAN_LOGGER_NAME, MACHINE_LOGGER_NAME):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.flush()
            logger.removeHandler(handler)
            handler.close()
        for flt in list(logger.filters):
            logger.removeFilter(flt)


def _emit_run_metadata(
    human_logger: logging.Logger,
    machine_logger: logging.Logger,
    started_at: _dt.datetime,
    metadata: Mapping[str, object] | None,
) -> None:
    run: Dict[str, object] = {
        "run_id": uuid.uuid4().hex,
        "started_at": started_at.isoformat(timespec="seconds"),
        "version": version.__version__,
        "build": version.__build__,
        "python": sys.version.split()[0],
    }
    if _CURRENT_LOG_PATHS is not None:
        run["audit_log"] = str(_CURRENT_LOG_PATHS[0])
        run["event_log"] = str(_CURRENT_LOG_PATHS[1])
    if metadata:
        run.update(metadata)

    human_logger.info(
        "Sensor Janitor %s (%s) starting, run %s",
        version.__version__,
        version.__build__,
        run["run_id"],
    )
    machine_logger.info("run_start", extra={"event": "run_start", "run": run})


__all__ = [
    "AUDIT_DATEFMT",
    "AUDIT_FORMAT",
    "HUMAN_LOGGER_NAME",
    "MACHINE_LOGGER_NAME",
    "build_log_paths",
    "get_human_logger",
    "get_log_paths",
    "get_machine_logger",
    "setup_console_logging",
    "setup_logging",
    "shutdown_logging",
]
