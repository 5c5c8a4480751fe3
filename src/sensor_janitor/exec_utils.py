"""!
@brief Subprocess execution helper with structured telemetry.
@details Every external command (``sc.exe``, ``icacls``) goes through
:func:`run_command` so the JSONL stream records a ``*_plan`` event before the
call and a ``*_result``/``*_missing``/``*_timeout``/``*_error`` event after it.
Failures never raise; they are reported through :class:`CommandResult`.
"""

from __future__ import annotations

import subprocess
import time
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass

from . import logging_ext

COMMAND_NOT_FOUND = 127


@dataclass
class CommandResult:
    """!
    @brief Outcome information from :func:`run_command`.
    @details ``timed_out`` marks commands that exceeded their timeout and
    ``error`` carries a short description of launch failures.
    """

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str
    duration: float
    timed_out: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.error


def _event_payload(
    name: str,
    command_list: Sequence[str],
    extra: Mapping[str, object] | None,
    **fields: object,
) -> MutableMapping[str, object]:
    payload: MutableMapping[str, object] = {"event": name, "command": list(command_list)}
    if extra:
        for key, value in extra.items():
            if key != "event":
                payload[key] = value
    payload.update(fields)
    return payload


def run_command(
    command: Sequence[str],
    *,
    event: str,
    timeout: int | float | None = None,
    human_message: str | None = None,
    extra: Mapping[str, object] | None = None,
) -> CommandResult:
    """!
    @brief Execute ``command`` with consistent logging.
    @param command Sequence of command arguments.
    @param event Base name for structured log events.
    @param timeout Optional timeout (seconds) passed to :func:`subprocess.run`.
    @param human_message Optional message emitted to the human logger before
    execution.
    @param extra Additional metadata merged into machine log payloads.
    @returns :class:`CommandResult` describing the observed outcome.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()

    command_list = [str(part) for part in command]
    machine_logger.info(
        f"{event}_plan",
        extra=dict(_event_payload(f"{event}_plan", command_list, extra, timeout=timeout)),
    )

    if human_message:
        human_logger.info(human_message)

    start = time.monotonic()
    try:
        completed = subprocess.run(  # noqa: S603 - intentional command execution
            command_list,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        duration = time.monotonic() - start
        human_logger.error("Command not found: %s", command_list[0])
        machine_logger.error(
            f"{event}_missing",
            extra=dict(_event_payload(f"{event}_missing", command_list, extra, duration=duration, error=str(exc))),
        )
        return CommandResult(
            command=command_list,
            returncode=COMMAND_NOT_FOUND,
            stdout="",
            stderr="",
            duration=duration,
            error=str(exc),
        )
    except subprocess.TimeoutExpired as exc:
        duration = time.monotonic() - start
        stdout = _decode(exc.stdout)
        stderr = _decode(exc.stderr)
        human_logger.error("Command timed out after %.1fs: %s", duration, " ".join(command_list))
        machine_logger.error(
            f"{event}_timeout",
            extra=dict(
                _event_payload(
                    f"{event}_timeout", command_list, extra, duration=duration, stdout=stdout, stderr=stderr
                )
            ),
        )
        return CommandResult(
            command=command_list,
            returncode=1,
            stdout=stdout,
            stderr=stderr,
            duration=duration,
            timed_out=True,
            error="timeout",
        )
    except OSError as exc:
        duration = time.monotonic() - start
        human_logger.error("Failed to execute %s: %s", command_list[0], exc)
        machine_logger.error(
            f"{event}_error",
            extra=dict(_event_payload(f"{event}_error", command_list, extra, duration=duration, error=str(exc))),
        )
        return CommandResult(
            command=command_list,
            returncode=1,
            stdout="",
            stderr="",
            duration=duration,
            error=str(exc),
        )

    duration = time.monotonic() - start
    machine_logger.info(
        f"{event}_result",
        extra=dict(
            _event_payload(
                f"{event}_result",
                command_list,
                extra,
                return_code=completed.returncode,
                stdout=completed.stdout,
                stderr=completed.stderr,
                duration=duration,
            )
        ),
    )

    return CommandResult(
        command=command_list,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        duration=duration,
    )


def _decode(stream: object) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return str(stream)


__all__ = ["COMMAND_NOT_FOUND", "CommandResult", "run_command"]
