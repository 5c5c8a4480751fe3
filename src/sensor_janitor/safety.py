"""!
@brief Safety and guardrail enforcement helpers.
@details Destructive helpers call into this module immediately before they
mutate the host. Identifiers are validated so that ``root + identifier`` can
never collapse onto the root itself, registry deletions must stay strictly
beneath one of the profile's product roots, and filesystem deletions must target
either the install directory or a folder strictly beneath the cache root.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from . import constants
from .config import CleanupProfile
from .elevation import PrivilegeError

SUPPORTED_SYSTEMS = {"windows", "nt"}


class SafetyError(ValueError):
    """!
    @brief Raised when a mutation would leave the allowed scope.
    """


def validate_identifier(identifier: str) -> str:
    """!
    @brief Ensure ``identifier`` is a single, non-empty path component.
    @returns The identifier unchanged.
    @throws SafetyError For empty identifiers, separators or ``..``.
    """

    if not identifier or not identifier.strip():
        raise SafetyError("Refusing to operate on an empty product identifier")
    if "\\" in identifier or "/" in identifier:
        raise SafetyError(f"Product identifier contains a path separator: {identifier!r}")
    if identifier.strip() in {".", ".."} or ".." in identifier:
        raise SafetyError(f"Product identifier contains a relative component: {identifier!r}")
    return identifier


def _normalize_registry(path: str) -> str:
    normalized = path.strip().replace("/", "\\").strip("\\").upper()
    hive, sep, remainder = normalized.partition("\\")
    hive_handle = constants.REGISTRY_ROOTS.get(hive)
    if hive_handle is not None:
        for alias, handle in constants.REGISTRY_ROOTS.items():
            if handle == hive_handle and len(alias) <= 4:
                hive = alias
                break
    return f"{hive}{sep}{remainder}"


def guard_registry_delete(path: str, roots: Iterable[str]) -> None:
    """!
    @brief Require ``path`` to be a strict descendant of one of ``roots``.
    @throws SafetyError Otherwise.
    """

    target = _normalize_registry(path)
    for root in roots:
        prefix = _normalize_registry(root) + "\\"
        if target.startswith(prefix) and len(target) > len(prefix):
            return
    raise SafetyError(f"Refusing to delete registry key outside the product roots: {path}")


def _normalize_fs(path: Path | str) -> str:
    return os.path.normcase(os.path.normpath(os.path.abspath(str(path))))


def guard_filesystem_delete(path: Path | str, profile: CleanupProfile) -> None:
    """!
    @brief Require ``path`` to be the install directory or beneath the cache root.
    @throws SafetyError Otherwise.
    """

    target = _normalize_fs(path)
    if target == _normalize_fs(profile.install_dir):
        return
    cache_root = _normalize_fs(profile.cache_root).rstrip(os.sep)
    if target.startswith(cache_root + os.sep) and len(target) > len(cache_root) + 1:
        return
    raise SafetyError(f"Refusing to delete path outside the cleanup scope: {path}")


def evaluate_runtime_environment(*, is_admin: bool, os_system: str, dry_run: bool) -> None:
    """!
    @brief Validate the startup preconditions for a cleanup run.
    @details Dry-runs only read state and may proceed without elevation.
    @throws PrivilegeError When a destructive run lacks administrative rights.
    @throws RuntimeError When the host is not Windows and the run is destructive.
    """

    if dry_run:
        return
    if os_system.strip().lower() not in SUPPORTED_SYSTEMS:
        raise RuntimeError(f"Sensor cleanup requires Windows; detected {os_system or 'unknown'}")
    if not is_admin:
        raise PrivilegeError("Administrative rights are required for destructive operations.")


__all__ = [
    "SafetyError",
    "evaluate_runtime_environment",
    "guard_filesystem_delete",
    "guard_registry_delete",
    "validate_identifier",
]
