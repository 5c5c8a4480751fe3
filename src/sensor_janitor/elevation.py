"""!
@brief Elevation and user-context helpers.
@details Administrative rights are a hard precondition for a destructive run;
the CLI checks them before the first prompt and refuses to start otherwise.
"""
from __future__ import annotations

import ctypes
import os


class PrivilegeError(PermissionError):
    """!
    @brief Raised when the process lacks the rights a run requires.
    """


def is_admin() -> bool:
    """!
    @brief Determine whether the current process token has administrative rights.
    """

    if os.name != "nt":
        return False
    try:
        shell32 = ctypes.windll.shell32  # type: ignore[attr-defined]
        return bool(shell32.IsUserAnAdmin())
    except Exception:
        return False


def current_username() -> str:
    """!
    @brief Return the current user name best-effort.
    """

    for candidate in (os.getlogin, lambda: os.environ.get("USERNAME"), lambda: os.environ.get("USER")):
        try:
            value = candidate()
        except OSError:
            value = None
        if value:
            return str(value)
    return ""


__all__ = ["PrivilegeError", "current_username", "is_admin"]
