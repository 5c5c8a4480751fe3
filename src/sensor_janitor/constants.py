"""!
@brief Static data for Sensor Janitor.
@details Centralises registry hive handles, the default sensor profile (service
names, uninstall roots, product display name, cache and install paths) and the
timing constants used while tearing services down. :mod:`sensor_janitor.config`
builds the runtime profile from these values.
"""
from __future__ import annotations

from typing import Dict, Tuple

try:  # pragma: no cover - Windows registry handles are optional on test hosts.
    import winreg
except ImportError:  # pragma: no cover - test scaffolding supplies substitutes.
    winreg = None  # type: ignore[assignment]


if winreg is not None:  # pragma: no branch - deterministic assignments.
    HKLM = winreg.HKEY_LOCAL_MACHINE
    HKCU = winreg.HKEY_CURRENT_USER
    HKCR = winreg.HKEY_CLASSES_ROOT
    HKU = winreg.HKEY_USERS
else:  # pragma: no cover - exercised implicitly in non-Windows CI.
    HKLM = 0x80000002
    HKCU = 0x80000001
    HKCR = 0x80000000
    HKU = 0x80000003


REGISTRY_ROOTS: Dict[str, int] = {
    "HKLM": HKLM,
    "HKEY_LOCAL_MACHINE": HKLM,
    "HKCU": HKCU,
    "HKEY_CURRENT_USER": HKCU,
    "HKCR": HKCR,
    "HKEY_CLASSES_ROOT": HKCR,
    "HKU": HKU,
    "HKEY_USERS": HKU,
}
"""!
@brief Textual hive prefixes accepted in registry paths.
"""

SENSOR_DISPLAY_NAME = "Azure Advanced Threat Protection Sensor"
"""!
@brief ``DisplayName``/``ProductName`` value identifying sensor registrations.
"""

SENSOR_SERVICES: Tuple[str, ...] = (
    "AATPSensor",
    "AATPSensorUpdater",
    "MDISensor",
    "MDISensorUpdater",
)
"""!
@brief Sensor services, legacy names first.
"""

PRODUCT_REGISTRY_ROOTS: Tuple[str, ...] = (
    r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
    r"HKLM\SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall",
    r"HKCU\SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
    r"HKLM\SOFTWARE\Classes\Installer\Products",
    r"HKCR\Installer\Products",
    r"HKLM\SOFTWARE\Classes\Installer\Dependencies",
)
"""!
@brief Registry locations where installer records for the sensor can live.
@details ``HKCR\\Installer\\Products`` is a merged view of
``HKLM\\SOFTWARE\\Classes\\Installer\\Products`` so the same identifier is
routinely seen twice during discovery.
"""

DISPLAY_NAME_ATTRIBUTES: Tuple[str, ...] = ("DisplayName", "ProductName")

PACKAGE_CACHE_ROOT = r"C:\ProgramData\Package Cache"

SENSOR_INSTALL_DIR = r"C:\Program Files\Azure Advanced Threat Protection Sensor"

SERVICE_POLL_INTERVAL = 5.0
"""!
@brief Seconds between service state polls while waiting for a stop.
"""

SERVICE_STOP_TIMEOUT = 60.0
"""!
@brief Seconds to wait for a service to reach ``STOPPED``.
"""

SERVICE_DELETE_SETTLE = 2.0
"""!
@brief Pause after ``sc delete`` before re-checking existence.
"""

SC_COMMAND_TIMEOUT = 30
"""!
@brief Per-invocation timeout for ``sc.exe`` calls.
"""

ERROR_SERVICE_DOES_NOT_EXIST = 1060

LOG_FILE_PREFIX = "sensor-janitor"

PASSWORD_MAX_AGE_DAYS = 90
"""!
@brief Default directory password policy age used for expiry arithmetic.
"""

PASSWORD_WARNING_DAYS = 14

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
LOGIN_BASE_URL = "https://login.microsoftonline.com"


__all__ = [
    "DISPLAY_NAME_ATTRIBUTES",
    "ERROR_SERVICE_DOES_NOT_EXIST",
    "GRAPH_BASE_URL",
    "GRAPH_SCOPE",
    "HKCR",
    "HKCU",
    "HKLM",
    "HKU",
    "LOGIN_BASE_URL",
    "LOG_FILE_PREFIX",
    "PACKAGE_CACHE_ROOT",
    "PASSWORD_MAX_AGE_DAYS",
    "PASSWORD_WARNING_DAYS",
    "PRODUCT_REGISTRY_ROOTS",
    "REGISTRY_ROOTS",
    "SC_COMMAND_TIMEOUT",
    "SENSOR_DISPLAY_NAME",
    "SENSOR_INSTALL_DIR",
    "SENSOR_SERVICES",
    "SERVICE_DELETE_SETTLE",
    "SERVICE_POLL_INTERVAL",
    "SERVICE_STOP_TIMEOUT",
]
