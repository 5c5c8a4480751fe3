"""!
@brief Tests for product identifier discovery across registry roots.
"""

from __future__ import annotations

import dataclasses
import pathlib
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from conftest import GUID, OTHER_GUID, FakeRegistry  # noqa: E402
from sensor_janitor.discovery import discover_resource_identifiers  # noqa: E402
from sensor_janitor.registry_tools import WindowsRegistry  # noqa: E402


def test_identifier_seen_under_several_roots_is_reported_once(profile) -> None:
    registry = FakeRegistry()
    uninstall, _, _, products, merged, _ = profile.registry_roots
    registry.add(profile.registry_path(uninstall, GUID), DisplayName=profile.display_name)
    registry.add(profile.registry_path(products, GUID), ProductName=profile.display_name)
    registry.add(profile.registry_path(merged, GUID), ProductName=profile.display_name)

    assert discover_resource_identifiers(registry, profile) == {GUID}


def test_only_exact_display_name_matches(profile) -> None:
    registry = FakeRegistry()
    uninstall, wow, hkcu, *_ = profile.registry_roots
    registry.add(profile.registry_path(uninstall, GUID), DisplayName=profile.display_name)
    registry.add(profile.registry_path(wow, OTHER_GUID), DisplayName=profile.display_name.lower())
    registry.add(profile.registry_path(hkcu, "{AAAA}"), DisplayName=profile.display_name + " Updater")
    registry.add(profile.registry_path(hkcu, "{BBBB}"), Publisher=profile.display_name)
    registry.add(profile.registry_path(hkcu, "{CCCC}"), DisplayName=42)

    assert discover_resource_identifiers(registry, profile) == {GUID}


def test_missing_roots_yield_empty_set(profile) -> None:
    assert discover_resource_identifiers(FakeRegistry(), profile) == set()


def test_unreadable_entries_are_skipped(profile) -> None:
    class _Flaky(FakeRegistry):
        def read_values(self, path):
            if OTHER_GUID in path:
                raise PermissionError(path)
            return super().read_values(path)

    registry = _Flaky()
    root = profile.registry_roots[0]
    registry.add(profile.registry_path(root, OTHER_GUID), DisplayName=profile.display_name)
    registry.add(profile.registry_path(root, GUID), DisplayName=profile.display_name)

    assert discover_resource_identifiers(registry, profile) == {GUID}


def test_result_does_not_depend_on_root_order(profile) -> None:
    registry = FakeRegistry()
    roots = profile.registry_roots
    registry.add(profile.registry_path(roots[1], GUID), DisplayName=profile.display_name)
    registry.add(profile.registry_path(roots[4], OTHER_GUID), ProductName=profile.display_name)
    registry.add(profile.registry_path(roots[3], OTHER_GUID), ProductName=profile.display_name)

    reversed_profile = dataclasses.replace(profile, registry_roots=tuple(reversed(roots)))

    assert discover_resource_identifiers(registry, profile) == {GUID, OTHER_GUID}
    assert discover_resource_identifiers(registry, reversed_profile) == {GUID, OTHER_GUID}


def test_root_without_hive_contributes_nothing(profile) -> None:
    unqualified = "SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Uninstall"
    scoped = dataclasses.replace(profile, registry_roots=(unqualified,))

    assert discover_resource_identifiers(WindowsRegistry(), scoped) == set()
