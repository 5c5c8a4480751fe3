"""!
@brief Windows service teardown.
@details Wraps ``sc.exe`` to query, stop and delete the sensor services and
implements the per-service removal sequence: existence check, stop request,
bounded polling for ``STOPPED``, delete request, settle pause and a final
existence check. A service that never stops is left in place because deleting
a running service leaves it in an undefined ``marked for deletion`` state.
"""
from __future__ import annotations

import enum
import time
from dataclasses import dataclass

from . import constants, exec_utils, logging_ext
from .config import CleanupProfile
from .summary import PhaseResult


class ServiceControlError(RuntimeError):
    """!
    @brief Raised when the service state cannot be determined.
    """


class ServiceOutcome(str, enum.Enum):
    DELETED = "deleted"
    MISSING = "missing"
    STOP_TIMEOUT = "stop_timeout"
    DELETE_FAILED = "delete_failed"
    ERROR = "error"


@dataclass(frozen=True)
class ServiceStatus:
    """!
    @brief Snapshot of a service as reported by ``sc query``.
    @details ``state`` is the uppercase token from the ``STATE`` line
    (``RUNNING``, ``STOPPED``, ``STOP_PENDING``...) or ``""`` when the service
    does not exist.
    """

    name: str
    exists: bool
    state: str = ""

    @property
    def stopped(self) -> bool:
        return self.state == "STOPPED"


def _parse_service_state(output: str) -> str:
    """!
    @brief Extract the status token from ``sc query`` output.
    @param output Raw stdout text from the command.
    @returns Uppercase status token or empty string when not detected.
    """

    for line in output.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.upper().startswith("STATE"):
            _, _, remainder = stripped.partition(":")
            tokens = remainder.strip().split()
            if tokens:
                return tokens[-1].upper()
    return ""


class ScServiceController:
    """!
    @brief Service control surface backed by ``sc.exe``.
    @details ``stop`` and ``delete`` are fire-and-forget: the service control
    manager completes them asynchronously, so callers confirm the effect with
    :meth:`query`.
    """

    def __init__(self, *, timeout: int = constants.SC_COMMAND_TIMEOUT) -> None:
        self._timeout = timeout

    def query(self, name: str) -> ServiceStatus:
        result = exec_utils.run_command(
            ["sc.exe", "query", name],
            event="service_query",
            timeout=self._timeout,
            extra={"service": name},
        )
        if result.returncode == exec_utils.COMMAND_NOT_FOUND:
            raise ServiceControlError("sc.exe is not available on this host")
        if result.timed_out:
            raise ServiceControlError(f"sc query {name} timed out")
        if result.returncode == constants.ERROR_SERVICE_DOES_NOT_EXIST:
            return ServiceStatus(name=name, exists=False)
        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise ServiceControlError(f"sc query {name} returned {result.returncode}: {detail}")
        return ServiceStatus(name=name, exists=True, state=_parse_service_state(result.stdout) or "UNKNOWN")

    def stop(self, name: str) -> None:
        result = exec_utils.run_command(
            ["sc.exe", "stop", name],
            event="service_stop",
            timeout=self._timeout,
            human_message=f"Requesting stop for service {name}",
            extra={"service": name},
        )
        if not result.ok:
            logging_ext.get_human_logger().debug("sc stop %s returned %s", name, result.returncode)

    def delete(self, name: str) -> None:
        result = exec_utils.run_command(
            ["sc.exe", "delete", name],
            event="service_delete",
            timeout=self._timeout,
            human_message=f"Requesting deletion of service {name}",
            extra={"service": name},
        )
        if not result.ok:
            logging_ext.get_human_logger().debug("sc delete %s returned %s", name, result.returncode)


def wait_for_stop(name: str, controller: ScServiceController, *, interval: float, timeout: float) -> ServiceStatus:
    """!
    @brief Poll ``name`` every ``interval`` seconds until it stops or ``timeout`` elapses.
    @details Elapsed time is the sum of the pauses taken, so the number of
    queries is bounded by ``timeout / interval + 1`` regardless of how long
    each ``sc query`` takes.
    @returns The last observed status.
    """

    waited = 0.0
    while True:
        status = controller.query(name)
        if not status.exists or status.stopped:
            return status
        if waited >= timeout:
            return status
        time.sleep(interval)
        waited += interval


def _teardown(
    name: str,
    controller: ScServiceController,
    profile: CleanupProfile,
    result: PhaseResult,
    *,
    dry_run: bool,
) -> ServiceOutcome:
    human_logger = logging_ext.get_human_logger()

    status = controller.query(name)
    if not status.exists:
        human_logger.info("Service %s not found; nothing to remove", name)
        result.services_missing.add(name)
        return ServiceOutcome.MISSING

    if dry_run:
        human_logger.info("Dry-run: would stop and delete service %s (state %s)", name, status.state)
        result.services_deleted.add(name)
        return ServiceOutcome.DELETED

    if not status.stopped:
        human_logger.info("Stopping service %s (state %s)", name, status.state)
        controller.stop(name)
        status = wait_for_stop(
            name,
            controller,
            interval=profile.poll_interval,
            timeout=profile.stop_timeout,
        )
        if not status.exists:
            human_logger.info("Service %s disappeared while stopping", name)
            result.services_missing.add(name)
            return ServiceOutcome.MISSING
        if not status.stopped:
            human_logger.error(
                "Service %s did not stop within %gs (state %s); skipping delete",
                name,
                profile.stop_timeout,
                status.state,
            )
            result.record_error(
                f"service {name}",
                f"timed out after {profile.stop_timeout:g}s waiting for STOPPED (state {status.state})",
            )
            return ServiceOutcome.STOP_TIMEOUT

    controller.delete(name)
    time.sleep(profile.delete_settle)

    if controller.query(name).exists:
        human_logger.error("Service %s is still present after the delete request", name)
        result.record_error(f"service {name}", "still present after delete request")
        return ServiceOutcome.DELETE_FAILED

    human_logger.info("Deleted service %s", name)
    result.services_deleted.add(name)
    return ServiceOutcome.DELETED


def remove_service(
    name: str,
    controller: ScServiceController,
    profile: CleanupProfile,
    *,
    dry_run: bool = False,
) -> PhaseResult:
    """!
    @brief Stop and delete one service, recording the outcome.
    @details Missing services are recorded in ``services_missing``. Stop
    timeouts, failed deletions and unexpected faults are recorded in
    ``errors``; none of them propagate, so the caller can continue with the
    next service.
    @param name Service name.
    @param controller Service control surface.
    @param profile Timing values come from ``poll_interval``,
    ``stop_timeout`` and ``delete_settle``.
    @param dry_run When ``True`` only the existence check runs.
    @returns A :class:`PhaseResult` holding this service's outcome.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()
    result = PhaseResult()

    try:
        outcome = _teardown(name, controller, profile, result, dry_run=dry_run)
    except Exception as exc:  # resource boundary: one service never aborts the run
        human_logger.error("Unexpected failure while removing service %s: %s", name, exc)
        result.record_error(f"service {name}", exc)
        outcome = ServiceOutcome.ERROR

    machine_logger.info(
        "service_remove",
        extra={"event": "service_remove", "service": name, "outcome": outcome.value, "dry_run": dry_run},
    )
    return result


__all__ = [
    "ScServiceController",
    "ServiceControlError",
    "ServiceOutcome",
    "ServiceStatus",
    "remove_service",
    "wait_for_stop",
]
