"""!
@brief Guardrail tests for identifiers, registry scope and filesystem scope.
"""

from __future__ import annotations

import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from sensor_janitor import elevation, safety  # noqa: E402

ROOTS = (
    r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
    r"HKCR\Installer\Products",
)


@pytest.mark.parametrize("identifier", ["", "   ", "..", "a\\b", "a/b", "x..y"])
def test_validate_identifier_rejects_unsafe_values(identifier: str) -> None:
    with pytest.raises(safety.SafetyError):
        safety.validate_identifier(identifier)


def test_validate_identifier_accepts_guid() -> None:
    guid = "{6B1E2C4D-1F3A-4B5C-9D8E-7F6A5B4C3D2E}"
    assert safety.validate_identifier(guid) == guid


@pytest.mark.parametrize(
    "path",
    [
        r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall\{G}",
        r"HKEY_LOCAL_MACHINE\software\microsoft\windows\currentversion\uninstall\{G}\Sub",
        r"HKCR\Installer\Products\0123ABCD",
    ],
)
def test_registry_guard_allows_descendants(path: str) -> None:
    safety.guard_registry_delete(path, ROOTS)


@pytest.mark.parametrize(
    "path",
    [
        r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
        r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall\\",
        r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\UninstallExtra\{G}",
        r"HKCU\Installer\Products\{G}",
        r"HKLM\SOFTWARE",
    ],
)
def test_registry_guard_blocks_everything_else(path: str) -> None:
    with pytest.raises(safety.SafetyError):
        safety.guard_registry_delete(path, ROOTS)


def test_filesystem_guard_scopes_to_install_and_cache(profile) -> None:
    safety.guard_filesystem_delete(profile.install_path(), profile)
    safety.guard_filesystem_delete(profile.cache_folder("{G}"), profile)

    for outside in (
        profile.cache_root,
        pathlib.Path(profile.cache_root).parent,
        pathlib.Path(profile.install_dir) / "Bin",
        pathlib.Path(profile.cache_root + "2") / "{G}",
        pathlib.Path(profile.cache_root) / ".." / "Sensor2",
    ):
        with pytest.raises(safety.SafetyError):
            safety.guard_filesystem_delete(outside, profile)


def test_runtime_environment_requires_admin_on_windows() -> None:
    safety.evaluate_runtime_environment(is_admin=True, os_system="Windows", dry_run=False)

    with pytest.raises(elevation.PrivilegeError):
        safety.evaluate_runtime_environment(is_admin=False, os_system="Windows", dry_run=False)


def test_runtime_environment_rejects_other_systems_unless_dry_run() -> None:
    with pytest.raises(RuntimeError):
        safety.evaluate_runtime_environment(is_admin=True, os_system="Linux", dry_run=False)

    safety.evaluate_runtime_environment(is_admin=False, os_system="Linux", dry_run=True)
