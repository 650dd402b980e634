"""
Removal of agent-generated runtime artifacts on package purge.

Both operations tolerate absent targets. They report what was removed and
raise only on real filesystem failures.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


class PurgeError(RuntimeError):
    """Raised when one or more artifacts could not be removed."""

    def __init__(self, message: str, removed: list[Path]) -> None:
        super().__init__(message)
        self.removed = removed


def purge_operations(operations_dir: Path) -> list[Path]:
    """
    Remove the generated operations directory and everything in it.

    Returns:
        [operations_dir] if it was removed, [] if it did not exist.

    Raises:
        PurgeError: If removal failed.
    """
    if not operations_dir.exists():
        logger.info("Operations directory %s not present, nothing to purge", operations_dir)
        return []

    try:
        shutil.rmtree(operations_dir)
    except OSError as exc:
        raise PurgeError(f"failed to remove {operations_dir}: {exc}", []) from exc

    logger.info("Removed operations directory %s", operations_dir)
    return [operations_dir]


def purge_locks(lock_paths: Iterable[Path]) -> list[Path]:
    """
    Remove each known mapper lock file that exists.

    Every path is attempted even if an earlier one fails.

    Returns:
        Lock files actually removed.

    Raises:
        PurgeError: If any existing lock file could not be removed. Carries
                    the files that were removed before raising.
    """
    removed: list[Path] = []
    failures: list[str] = []

    for lock in lock_paths:
        try:
            lock.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.error("Failed to remove lock file %s: %s", lock, exc)
            failures.append(f"{lock}: {exc}")
            continue
        logger.info("Removed lock file %s", lock)
        removed.append(lock)

    if failures:
        raise PurgeError("failed to remove lock files: " + "; ".join(failures), removed)
    return removed
