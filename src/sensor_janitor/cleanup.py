"""!
@brief Sensor cleanup orchestrator.
@details Runs three confirm-then-act phases in a fixed order:

1. stop and delete the sensor services;
2. discover the product GUIDs, then delete their registry registrations and
   package cache folders (skipped without prompting when nothing is found);
3. delete the install directory.

Declining a confirmation aborts the run before the phase touches anything; the
phases that already ran are not rolled back. Every resource action is checked
for existence right before it mutates, so running the sequence against a
partially or fully cleaned host is safe and simply records the residue as
missing. Each phase returns a :class:`~sensor_janitor.summary.PhaseResult`
that is folded into the run's :class:`~sensor_janitor.summary.AuditSummary`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Protocol

from . import fs_tools, logging_ext, safety
from .config import CleanupProfile
from .discovery import discover_resource_identifiers
from .registry_tools import WindowsRegistry
from .services import ScServiceController, remove_service
from .summary import AuditSummary, InstallFolderOutcome, PhaseResult

ConfirmCallback = Callable[..., bool]

PHASE_SERVICES = "services"
PHASE_REGISTRY = "registry"
PHASE_INSTALL_FOLDER = "install-folder"


class RegistryStore(Protocol):
    def enumerate_children(self, path: str) -> list[str]: ...

    def read_values(self, path: str) -> dict[str, Any]: ...

    def exists(self, path: str) -> bool: ...

    def delete_tree(self, path: str) -> bool: ...


@dataclass
class CleanupHost:
    """!
    @brief Host surfaces the orchestrator mutates.
    """

    services: ScServiceController = field(default_factory=ScServiceController)
    registry: RegistryStore = field(default_factory=WindowsRegistry)


def remove_resource_registration(
    identifier: str,
    registry: RegistryStore,
    profile: CleanupProfile,
    *,
    dry_run: bool = False,
) -> PhaseResult:
    """!
    @brief Delete ``identifier`` beneath every product root.
    @details All roots are attempted even after a failure because a product
    may be registered under any subset of them.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()
    result = PhaseResult()

    try:
        safety.validate_identifier(identifier)
    except safety.SafetyError as exc:
        human_logger.error("Skipping registry cleanup for %r: %s", identifier, exc)
        result.record_error(f"guid {identifier!r}", exc)
        return result

    for root in profile.registry_roots:
        path = profile.registry_path(root, identifier)
        try:
            safety.guard_registry_delete(path, profile.registry_roots)
            if dry_run:
                existed = registry.exists(path)
            else:
                existed = registry.delete_tree(path)
        except Exception as exc:  # resource boundary: continue with the next root
            human_logger.error("Failed to delete registry key %s: %s", path, exc)
            result.record_error(f"registry {path}", exc)
            outcome = "error"
        else:
            if existed:
                verb = "Dry-run: would delete" if dry_run else "Deleted"
                human_logger.info("%s registry key %s", verb, path)
                result.registry_keys_deleted.add(path)
                outcome = "deleted"
            else:
                human_logger.info("Registry key %s not present", path)
                result.registry_keys_missing.add(path)
                outcome = "missing"

        machine_logger.info(
            "registry_remove",
            extra={"event": "registry_remove", "path": path, "guid": identifier, "outcome": outcome, "dry_run": dry_run},
        )

    return result


def remove_cache_folder(identifier: str, profile: CleanupProfile, *, dry_run: bool = False) -> PhaseResult:
    """!
    @brief Delete the package cache folder for ``identifier`` when present.
    """

    human_logger = logging_ext.get_human_logger()
    result = PhaseResult()

    try:
        safety.validate_identifier(identifier)
        folder = profile.cache_folder(identifier)
        safety.guard_filesystem_delete(folder, profile)
        existed = fs_tools.remove_tree(folder, dry_run=dry_run)
    except Exception as exc:  # resource boundary
        human_logger.error("Failed to remove cache folder for %s: %s", identifier, exc)
        result.record_error(f"cache {identifier}", exc)
        return result

    if existed:
        verb = "Dry-run: would remove" if dry_run else "Removed"
        human_logger.info("%s cache folder %s", verb, folder)
        result.cache_folders_deleted.add(str(folder))
    else:
        human_logger.info("Cache folder %s not present", folder)
        result.cache_folders_missing.add(str(folder))
    return result


def remove_install_folder(profile: CleanupProfile, *, dry_run: bool = False) -> PhaseResult:
    """!
    @brief Delete the sensor install directory.
    @details The outcome is ``Deleted`` or ``NotFound``; on failure it stays
    ``Unset`` and the error is recorded.
    """

    human_logger = logging_ext.get_human_logger()
    result = PhaseResult()
    folder = profile.install_path()

    try:
        safety.guard_filesystem_delete(folder, profile)
        existed = fs_tools.remove_tree(folder, dry_run=dry_run)
    except Exception as exc:  # resource boundary
        human_logger.error("Failed to remove install folder %s: %s", folder, exc)
        result.record_error(f"install folder {folder}", exc)
        return result

    if existed:
        verb = "Dry-run: would remove" if dry_run else "Removed"
        human_logger.info("%s install folder %s", verb, folder)
        result.install_folder = InstallFolderOutcome.DELETED
    else:
        human_logger.info("Install folder %s not present", folder)
        result.install_folder = InstallFolderOutcome.NOT_FOUND
    return result


def run_services_phase(host: CleanupHost, profile: CleanupProfile, *, dry_run: bool = False) -> PhaseResult:
    result = PhaseResult()
    for name in profile.service_names:
        result.merge(remove_service(name, host.services, profile, dry_run=dry_run))
    return result


def run_registry_phase(
    identifiers: Iterable[str],
    host: CleanupHost,
    profile: CleanupProfile,
    *,
    dry_run: bool = False,
) -> PhaseResult:
    """!
    @brief Remove registrations and cache folders for each identifier.
    """

    result = PhaseResult()
    for identifier in sorted(identifiers):
        result.merge(remove_resource_registration(identifier, host.registry, profile, dry_run=dry_run))
        result.merge(remove_cache_folder(identifier, profile, dry_run=dry_run))
    return result


def _abort(summary: AuditSummary, phase: str) -> AuditSummary:
    logging_ext.get_human_logger().warning("Confirmation declined for the %s phase; aborting remaining phases", phase)
    logging_ext.get_machine_logger().warning("cleanup_aborted", extra={"event": "cleanup_aborted", "phase": phase})
    summary.aborted_at = phase
    return summary


def run_cleanup(
    profile: CleanupProfile,
    *,
    confirm: ConfirmCallback,
    host: CleanupHost | None = None,
    dry_run: bool = False,
) -> AuditSummary:
    """!
    @brief Execute the full cleanup sequence.
    @param profile Shared configuration for every phase.
    @param confirm Callable invoked as ``confirm(phase, **details)``; any falsy
    answer aborts the run before that phase mutates anything.
    @param host Service and registry surfaces; defaults to the live host.
    @param dry_run Report intended actions without mutating the host.
    @returns The accumulated summary; ``aborted_at`` is set on a decline.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()
    host = host or CleanupHost()
    summary = AuditSummary(dry_run=dry_run)

    machine_logger.info(
        "cleanup_start",
        extra={"event": "cleanup_start", "display_name": profile.display_name, "dry_run": dry_run},
    )

    human_logger.info("Services targeted: %s", ", ".join(profile.service_names))
    if not confirm(PHASE_SERVICES, services=", ".join(profile.service_names)):
        return _abort(summary, PHASE_SERVICES)
    human_logger.info("Starting services phase")
    summary.merge(run_services_phase(host, profile, dry_run=dry_run))
    human_logger.info("Services phase complete")

    identifiers = discover_resource_identifiers(host.registry, profile)
    summary.merge(PhaseResult(guids_found=set(identifiers)))
    if not identifiers:
        human_logger.warning(
            "No product GUIDs found for %r; skipping registry and cache cleanup",
            profile.display_name,
        )
    else:
        human_logger.info("Product GUIDs found: %s", ", ".join(sorted(identifiers)))
        if not confirm(PHASE_REGISTRY, guids=", ".join(sorted(identifiers))):
            return _abort(summary, PHASE_REGISTRY)
        human_logger.info("Starting registry and cache phase")
        summary.merge(run_registry_phase(identifiers, host, profile, dry_run=dry_run))
        human_logger.info("Registry and cache phase complete")

    if not confirm(PHASE_INSTALL_FOLDER, path=profile.install_dir):
        return _abort(summary, PHASE_INSTALL_FOLDER)
    human_logger.info("Starting install folder phase")
    summary.merge(remove_install_folder(profile, dry_run=dry_run))
    human_logger.info("Install folder phase complete")

    machine_logger.info("cleanup_complete", extra={"event": "cleanup_complete", "summary": summary.to_dict()})
    human_logger.info("Cleanup complete with %d error(s)", len(summary.errors))
    return summary


__all__ = [
    "CleanupHost",
    "PHASE_INSTALL_FOLDER",
    "PHASE_REGISTRY",
    "PHASE_SERVICES",
    "RegistryStore",
    "remove_cache_folder",
    "remove_install_folder",
    "remove_resource_registration",
    "run_cleanup",
    "run_registry_phase",
    "run_services_phase",
]
