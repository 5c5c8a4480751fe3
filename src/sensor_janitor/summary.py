"""!
@brief Run summary data structures.
@details Each cleanup phase returns a :class:`PhaseResult`; the orchestrator
folds them into one :class:`AuditSummary` that is rendered once at the end of
the run. Collections only ever grow: sets for resources (deduplicated) and a
list for error descriptions (ordered as they occurred).
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, List, Set


class InstallFolderOutcome(str, enum.Enum):
    """!
    @brief Singular result of the install-folder phase.
    """

    UNSET = "Unset"
    DELETED = "Deleted"
    NOT_FOUND = "NotFound"


@dataclass
class PhaseResult:
    """!
    @brief Outcomes gathered by one phase (or one resource action).
    """

    services_deleted: Set[str] = field(default_factory=set)
    services_missing: Set[str] = field(default_factory=set)
    guids_found: Set[str] = field(default_factory=set)
    registry_keys_deleted: Set[str] = field(default_factory=set)
    registry_keys_missing: Set[str] = field(default_factory=set)
    cache_folders_deleted: Set[str] = field(default_factory=set)
    cache_folders_missing: Set[str] = field(default_factory=set)
    install_folder: InstallFolderOutcome = InstallFolderOutcome.UNSET
    errors: List[str] = field(default_factory=list)

    def record_error(self, resource: str, description: object) -> None:
        self.errors.append(f"{resource}: {description}")

    def merge(self, other: "PhaseResult") -> None:
        """!
        @brief Fold ``other`` into this result additively.
        @details Sets are unioned and errors appended. The install folder
        outcome is only replaced by a non-``Unset`` value.
        """

        self.services_deleted |= other.services_deleted
        self.services_missing |= other.services_missing
        self.guids_found |= other.guids_found
        self.registry_keys_deleted |= other.registry_keys_deleted
        self.registry_keys_missing |= other.registry_keys_missing
        self.cache_folders_deleted |= other.cache_folders_deleted
        self.cache_folders_missing |= other.cache_folders_missing
        if other.install_folder is not InstallFolderOutcome.UNSET:
            self.install_folder = other.install_folder
        self.errors.extend(other.errors)


@dataclass
class AuditSummary(PhaseResult):
    """!
    @brief End-of-run view over every phase result.
    @details ``aborted_at`` names the phase whose confirmation was declined;
    ``None`` means the run reached completion.
    """

    dry_run: bool = False
    aborted_at: str | None = None

    @property
    def completed(self) -> bool:
        return self.aborted_at is None

    def to_dict(self) -> dict[str, object]:
        return {
            "dry_run": self.dry_run,
            "aborted_at": self.aborted_at,
            "services_deleted": sorted(self.services_deleted),
            "services_missing": sorted(self.services_missing),
            "guids_found": sorted(self.guids_found),
            "registry_keys_deleted": sorted(self.registry_keys_deleted),
            "registry_keys_missing": sorted(self.registry_keys_missing),
            "cache_folders_deleted": sorted(self.cache_folders_deleted),
            "cache_folders_missing": sorted(self.cache_folders_missing),
            "install_folder": self.install_folder.value,
            "errors": list(self.errors),
        }


def _section(title: str, items: Iterable[str]) -> List[str]:
    entries = sorted(items)
    lines = [f"{title} ({len(entries)}):"]
    if entries:
        lines.extend(f"  - {entry}" for entry in entries)
    else:
        lines.append("  (none)")
    return lines


def render_report(summary: AuditSummary) -> str:
    """!
    @brief Render ``summary`` as the human-readable block printed at exit.
    """

    if summary.completed:
        status = "Complete"
    else:
        status = f"Aborted during {summary.aborted_at} phase (partial results)"
    if summary.dry_run:
        status += " [dry-run: deleted entries are actions that would be taken]"

    lines = [
        "==================== Cleanup Summary ====================",
        f"Status: {status}",
    ]
    lines += _section("Services deleted", summary.services_deleted)
    lines += _section("Services missing", summary.services_missing)
    lines += _section("Product GUIDs found", summary.guids_found)
    lines += _section("Registry keys deleted", summary.registry_keys_deleted)
    lines += _section("Registry keys missing", summary.registry_keys_missing)
    lines += _section("Cache folders deleted", summary.cache_folders_deleted)
    lines += _section("Cache folders missing", summary.cache_folders_missing)
    lines.append(f"Install folder: {summary.install_folder.value}")
    lines.append(f"Errors ({len(summary.errors)}):")
    if summary.errors:
        lines.extend(f"  - {entry}" for entry in summary.errors)
    else:
        lines.append("  (none)")
    lines.append("=" * 57)
    return "\n".join(lines)


__all__ = ["AuditSummary", "InstallFolderOutcome", "PhaseResult", "render_report"]
