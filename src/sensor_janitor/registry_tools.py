"""!
@brief Registry management helpers.
@details Thin ``winreg`` utilities (open, enumerate, read, exists, recursive
delete) plus :class:`WindowsRegistry`, the store used by discovery and cleanup.
Paths are handled in their textual ``HKLM\\SOFTWARE\\...`` form so they can be
logged and reported verbatim. Keys are always opened in the 64-bit view so a
32-bit interpreter sees the same ``WOW6432Node`` layout as the installer.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Tuple

from . import constants, logging_ext

try:  # pragma: no cover - exercised through mocks on non-Windows platforms.
    import winreg
except ImportError:  # pragma: no cover - handled gracefully during tests.
    winreg = None  # type: ignore[assignment]


class RegistryPathError(ValueError):
    """!
    @brief Raised for registry paths without a recognised hive prefix.
    """


def _ensure_winreg() -> None:
    if winreg is None:  # pragma: no cover - simplifies non-Windows test runs.
        raise FileNotFoundError("Windows registry APIs are unavailable on this platform")


def _view_flag() -> int:
    return int(getattr(winreg, "KEY_WOW64_64KEY", 0))


def split_registry_path(path: str) -> Tuple[int, str]:
    """!
    @brief Split ``HKLM\\SOFTWARE\\...`` into a hive handle and sub key.
    @throws RegistryPathError When the hive prefix is unknown.
    """

    normalized = path.strip().replace("/", "\\").strip("\\")
    hive_token, _, subkey = normalized.partition("\\")
    hive = constants.REGISTRY_ROOTS.get(hive_token.upper())
    if hive is None:
        raise RegistryPathError(f"Unknown registry hive in {path!r}")
    return hive, subkey


def hive_name(root: int) -> str:
    """!
    @brief Provide a friendly identifier for a registry hive.
    """

    mapping = {
        constants.HKLM: "HKLM",
        constants.HKCU: "HKCU",
        constants.HKU: "HKU",
        constants.HKCR: "HKCR",
    }
    return mapping.get(root, hex(root))


@contextmanager
def open_key(root: int, path: str, access: int | None = None) -> Iterator[Any]:
    """!
    @brief Context manager that mirrors ``winreg.OpenKey`` while ensuring
    handles are closed correctly.
    """

    _ensure_winreg()
    access_mask = access if access is not None else winreg.KEY_READ  # type: ignore[union-attr]
    handle = winreg.OpenKey(root, path, 0, access_mask | _view_flag())  # type: ignore[union-attr]
    try:
        yield handle
    finally:
        winreg.CloseKey(handle)  # type: ignore[union-attr]


def iter_subkeys(root: int, path: str) -> Iterator[str]:
    """!
    @brief Yield subkey names for ``root``/``path``.
    """

    with open_key(root, path) as handle:
        subkey_count, _, _ = winreg.QueryInfoKey(handle)  # type: ignore[union-attr]
        for index in range(subkey_count):
            yield winreg.EnumKey(handle, index)  # type: ignore[union-attr]


def read_values(root: int, path: str) -> Dict[str, Any]:
    """!
    @brief Read all values beneath ``root``/``path`` into a dictionary.
    @details Missing or unreadable keys produce an empty mapping.
    """

    data: Dict[str, Any] = {}
    try:
        with open_key(root, path) as handle:
            _, value_count, _ = winreg.QueryInfoKey(handle)  # type: ignore[union-attr]
            for index in range(value_count):
                name, value, _ = winreg.EnumValue(handle, index)  # type: ignore[union-attr]
                data[name] = value
    except OSError:
        return {}
    return data


def key_exists(root: int, path: str) -> bool:
    try:
        with open_key(root, path):
            return True
    except OSError:
        return False


def delete_tree(root: int, path: str) -> None:
    """!
    @brief Delete ``root``/``path`` and every key beneath it, deepest first.
    @details ``winreg.DeleteKeyEx`` refuses keys that still have children, so
    the subkey names are collected before recursing and each level is removed
    after its descendants.
    @throws OSError When a key cannot be opened or deleted.
    """

    children = list(iter_subkeys(root, path))
    for child in children:
        delete_tree(root, f"{path}\\{child}")
    winreg.DeleteKeyEx(root, path, _view_flag(), 0)  # type: ignore[union-attr]


class WindowsRegistry:
    """!
    @brief Registry store operating on textual key paths.
    @details The surface is intentionally small: enumerate children, read
    values, check existence and delete a subtree. Tests substitute an
    in-memory object with the same methods.
    """

    def enumerate_children(self, path: str) -> List[str]:
        """!
        @brief List the immediate subkey names of ``path``.
        @throws OSError When ``path`` does not exist or cannot be opened.
        @throws RegistryPathError When ``path`` has no recognised hive prefix.
        """

        hive, subkey = split_registry_path(path)
        return list(iter_subkeys(hive, subkey))

    def read_values(self, path: str) -> Dict[str, Any]:
        hive, subkey = split_registry_path(path)
        return read_values(hive, subkey)

    def exists(self, path: str) -> bool:
        hive, subkey = split_registry_path(path)
        return key_exists(hive, subkey)

    def delete_tree(self, path: str) -> bool:
        """!
        @brief Recursively delete ``path``.
        @returns ``True`` when the key existed and was removed, ``False`` when
        it was already absent.
        """

        hive, subkey = split_registry_path(path)
        if not key_exists(hive, subkey):
            return False
        logging_ext.get_human_logger().debug("Deleting registry tree %s\\%s", hive_name(hive), subkey)
        delete_tree(hive, subkey)
        return True


__all__ = [
    "RegistryPathError",
    "WindowsRegistry",
    "delete_tree",
    "hive_name",
    "iter_subkeys",
    "key_exists",
    "open_key",
    "read_values",
    "split_registry_path",
]
