"""!
@brief Product identifier discovery.
@details Scans the profile's registry roots for installer records whose
``DisplayName`` or ``ProductName`` equals the sensor display name and returns
the matching key names. The scan only reads; a missing root or an unreadable
entry simply contributes no matches.
"""
from __future__ import annotations

from typing import Any, Protocol, Set

from . import logging_ext
from .config import CleanupProfile
from .registry_tools import RegistryPathError


class RegistryReader(Protocol):
    def enumerate_children(self, path: str) -> list[str]: ...

    def read_values(self, path: str) -> dict[str, Any]: ...


def _matches(values: dict[str, Any], profile: CleanupProfile) -> bool:
    for attribute in profile.display_name_attributes:
        value = values.get(attribute)
        if isinstance(value, str) and value == profile.display_name:
            return True
    return False


def discover_resource_identifiers(registry: RegistryReader, profile: CleanupProfile) -> Set[str]:
    """!
    @brief Collect the identifiers registered under the product display name.
    @param registry Store exposing ``enumerate_children`` and ``read_values``.
    @param profile Supplies the roots, attribute names and display name.
    @returns Deduplicated set of matching child key names.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()
    found: Set[str] = set()

    for root in profile.registry_roots:
        try:
            children = registry.enumerate_children(root)
        except (OSError, RegistryPathError) as exc:
            human_logger.debug("Registry root %s unavailable: %s", root, exc)
            continue

        for child in children:
            try:
                values = registry.read_values(profile.registry_path(root, child))
            except (OSError, RegistryPathError):
                continue
            if not _matches(values, profile):
                continue
            if child not in found:
                human_logger.info("Found product GUID %s under %s", child, root)
            found.add(child)

    machine_logger.info(
        "guid_discovery",
        extra={"event": "guid_discovery", "display_name": profile.display_name, "guids": sorted(found)},
    )
    return found


__all__ = ["RegistryReader", "discover_resource_identifiers"]
