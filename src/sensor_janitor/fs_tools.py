"""!
@brief Filesystem utilities for sensor residue cleanup.
@details Recursive removal of cache and install folders. On Windows the ACLs
are reset with ``icacls`` first and read-only attributes are cleared on demand
so leftovers owned by the sensor's service account can still be deleted.
"""
from __future__ import annotations

import os
import shutil
import stat
import sys
from pathlib import Path

from . import exec_utils, logging_ext


def _retry_writable(function, path: str, error: BaseException) -> None:
    """!
    @brief Clear the read-only bit on ``path`` and retry ``function`` once.
    """

    if isinstance(error, PermissionError):
        os.chmod(path, stat.S_IWRITE)
        function(path)
    else:
        raise error


def _rmtree(target: Path) -> None:
    if sys.version_info >= (3, 12):
        shutil.rmtree(target, onexc=_retry_writable)
    else:  # pragma: no cover - interpreter dependent
        shutil.rmtree(target, onerror=lambda func, path, exc_info: _retry_writable(func, path, exc_info[1]))


def reset_acl(path: Path) -> None:
    """!
    @brief Reset permissions on ``path`` so cleanup operations can proceed.
    @details Only meaningful on Windows; a non-zero ``icacls`` exit is logged
    and otherwise ignored since the subsequent delete reports the real failure.
    """

    if os.name != "nt":
        return

    result = exec_utils.run_command(
        ["icacls", str(path), "/reset", "/t", "/c", "/q"],
        event="acl_reset",
        timeout=120,
        extra={"path": str(path)},
    )
    if not result.ok:
        logging_ext.get_human_logger().warning(
            "icacls reported exit code %s for %s: %s",
            result.returncode,
            path,
            result.stderr.strip(),
        )


def remove_tree(path: Path | str, *, dry_run: bool = False) -> bool:
    """!
    @brief Delete ``path`` recursively when it exists.
    @param path File or directory to remove.
    @param dry_run When ``True`` only report whether the path exists.
    @returns ``True`` when the path existed (and was removed unless
    ``dry_run``), ``False`` when there was nothing to remove.
    @throws OSError When the path exists but cannot be removed.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()
    target = Path(path)

    if not target.exists() and not target.is_symlink():
        human_logger.debug("Skipping %s because it does not exist", target)
        return False

    machine_logger.info(
        "filesystem_remove",
        extra={"event": "filesystem_remove", "path": str(target), "dry_run": bool(dry_run)},
    )
    if dry_run:
        human_logger.info("Dry-run: would remove %s", target)
        return True

    if target.is_dir() and not target.is_symlink():
        reset_acl(target)
        _rmtree(target)
    else:
        try:
            target.unlink()
        except PermissionError:
            os.chmod(target, stat.S_IWRITE)
            target.unlink()
    return True


__all__ = ["remove_tree", "reset_acl"]
