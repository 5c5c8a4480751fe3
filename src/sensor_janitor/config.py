"""!
@brief Runtime configuration for the cleanup orchestrator.
@details :class:`CleanupProfile` bundles every fixed value the cleanup phases
need (service names, registry roots, the product display name, cache and
install paths, service timing) so a single object is handed to each operation
instead of each helper re-declaring its own copy. Profiles default to the
values in :mod:`sensor_janitor.constants` and can be overridden from a JSON
document via ``--config``.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Tuple

from . import constants


class ConfigError(ValueError):
    """!
    @brief Raised when a configuration override file is unusable.
    """


@dataclass(frozen=True)
class CleanupProfile:
    """!
    @brief Immutable description of the product being torn down.
    @details ``registry_roots`` are textual paths including the hive prefix
    (``HKLM\\...``). ``cache_root`` and ``install_dir`` are filesystem paths;
    cache folders are ``cache_root / <identifier>``. Timing values are seconds.
    """

    service_names: Tuple[str, ...] = constants.SENSOR_SERVICES
    registry_roots: Tuple[str, ...] = constants.PRODUCT_REGISTRY_ROOTS
    display_name: str = constants.SENSOR_DISPLAY_NAME
    display_name_attributes: Tuple[str, ...] = constants.DISPLAY_NAME_ATTRIBUTES
    cache_root: str = constants.PACKAGE_CACHE_ROOT
    install_dir: str = constants.SENSOR_INSTALL_DIR
    poll_interval: float = constants.SERVICE_POLL_INTERVAL
    stop_timeout: float = constants.SERVICE_STOP_TIMEOUT
    delete_settle: float = constants.SERVICE_DELETE_SETTLE

    def registry_path(self, root: str, identifier: str) -> str:
        """!
        @brief Join ``root`` and ``identifier`` into a registry key path.
        """

        return root.rstrip("\\") + "\\" + identifier

    def cache_folder(self, identifier: str) -> Path:
        return Path(self.cache_root) / identifier

    def install_path(self) -> Path:
        return Path(self.install_dir)


_TUPLE_FIELDS = {"service_names", "registry_roots", "display_name_attributes"}
_FLOAT_FIELDS = {"poll_interval", "stop_timeout", "delete_settle"}
_STRING_FIELDS = {"display_name", "cache_root", "install_dir"}


def _check_registry_root(root: str) -> None:
    hive, _, subkey = root.replace("/", "\\").strip("\\").partition("\\")
    if hive.upper() not in constants.REGISTRY_ROOTS:
        raise ConfigError(f"registry_roots entry {root!r} does not start with a known hive (HKLM, HKCU, HKCR, HKU)")
    if not subkey.strip("\\"):
        raise ConfigError(f"registry_roots entry {root!r} must name a key beneath the hive")


def default_profile() -> CleanupProfile:
    """!
    @brief Return the built-in sensor profile.
    """

    return CleanupProfile()


def apply_overrides(profile: CleanupProfile, overrides: Mapping[str, Any]) -> CleanupProfile:
    """!
    @brief Produce a copy of ``profile`` with ``overrides`` applied.
    @details Values are validated by field type: sequences of non-empty strings
    for ``service_names``/``registry_roots``/``display_name_attributes``,
    non-empty strings for names and paths, positive numbers for timing values.
    Registry roots must start with a known hive and name a key beneath it.
    @throws ConfigError For unknown keys or values of the wrong shape.
    """

    known = {item.name for item in fields(CleanupProfile)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigError("Unknown configuration keys: " + ", ".join(unknown))

    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        if key in _TUPLE_FIELDS:
            if isinstance(value, str) or not isinstance(value, (list, tuple)):
                raise ConfigError(f"{key} must be a list of strings")
            items = tuple(str(item).strip() for item in value)
            if not items or not all(items):
                raise ConfigError(f"{key} must contain at least one non-empty string")
            if key == "registry_roots":
                for root in items:
                    _check_registry_root(root)
            changes[key] = items
        elif key in _FLOAT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{key} must be a number of seconds")
            if value <= 0:
                raise ConfigError(f"{key} must be positive")
            changes[key] = float(value)
        elif key in _STRING_FIELDS:
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{key} must be a non-empty string")
            changes[key] = value.strip()

    updated = replace(profile, **changes)
    if updated.poll_interval > updated.stop_timeout:
        raise ConfigError("poll_interval cannot exceed stop_timeout")
    return updated


def load_profile(path: str | Path | None = None) -> CleanupProfile:
    """!
    @brief Build the runtime profile, optionally merging a JSON override file.
    @param path Optional path to a JSON object of profile overrides.
    @returns The effective :class:`CleanupProfile`.
    @throws ConfigError If the file cannot be read or parsed.
    """

    profile = default_profile()
    if path is None:
        return profile

    source = Path(path).expanduser()
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Unable to read configuration file {source}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {source}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"Configuration file {source} must contain a JSON object")
    return apply_overrides(profile, payload)


__all__ = [
    "CleanupProfile",
    "ConfigError",
    "apply_overrides",
    "default_profile",
    "load_profile",
]
