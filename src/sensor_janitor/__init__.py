"""!
@brief Sensor Janitor package root.
@details Modules under this namespace tear down residual security-sensor
installs on Windows hosts (services, installer registrations, package cache
and install folders) and look up directory password-expiry status.
"""

__all__ = [
    "main",
    "password_cli",
    "cleanup",
    "discovery",
    "services",
    "registry_tools",
    "fs_tools",
    "summary",
    "config",
    "confirm",
    "constants",
    "elevation",
    "exec_utils",
    "identity",
    "logging_ext",
    "password_expiry",
    "safety",
    "ui",
    "version",
]
