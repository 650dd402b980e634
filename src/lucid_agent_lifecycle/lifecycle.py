"""
Package removal hook.

The package manager calls the hook with exactly one verb. Only "purge" removes
agent-generated state; every other known verb means the package stays in some
form (upgrade path) or never finished installing (abort path), so nothing is
touched. Unknown verbs are rejected before any filesystem access.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from lucid_agent_lifecycle.core.purge import PurgeError, purge_locks, purge_operations
from lucid_agent_lifecycle.paths import Paths

logger = logging.getLogger(__name__)


class UnknownVerbError(ValueError):
    """Raised when the package manager passes a verb we do not recognize."""


class LifecycleVerb(str, Enum):
    PURGE = "purge"
    REMOVE = "remove"
    UPGRADE = "upgrade"
    FAILED_UPGRADE = "failed-upgrade"
    ABORT_INSTALL = "abort-install"
    ABORT_UPGRADE = "abort-upgrade"
    DISAPPEAR = "disappear"

    @classmethod
    def parse(cls, raw: str) -> "LifecycleVerb":
        try:
            return cls(raw)
        except ValueError:
            valid = ", ".join(v.value for v in cls)
            raise UnknownVerbError(f"unknown lifecycle verb {raw!r} (expected one of: {valid})") from None


@dataclass(frozen=True, slots=True)
class LifecycleResult:
    verb: LifecycleVerb
    ok: bool
    removed: tuple[Path, ...] = ()
    errors: tuple[str, ...] = ()


def _purge(paths: Paths) -> LifecycleResult:
    removed: list[Path] = []
    errors: list[str] = []

    # Each step runs regardless of the other's outcome.
    try:
        removed.extend(purge_operations(paths.operations_dir))
    except PurgeError as exc:
        logger.error("%s", exc)
        errors.append(str(exc))

    try:
        removed.extend(purge_locks(paths.lock_paths))
    except PurgeError as exc:
        removed.extend(exc.removed)
        errors.append(str(exc))

    return LifecycleResult(
        verb=LifecycleVerb.PURGE,
        ok=not errors,
        removed=tuple(removed),
        errors=tuple(errors),
    )


def handle_lifecycle(verb: LifecycleVerb | str, paths: Paths) -> LifecycleResult:
    """
    Run the cleanup for one removal-hook invocation.

    Args:
        verb: Parsed verb, or the raw string from the package manager.
        paths: Layout whose artifacts may be purged.

    Returns:
        LifecycleResult; ok=False only when a purge step failed.

    Raises:
        UnknownVerbError: If verb is a string outside LifecycleVerb.
    """
    if not isinstance(verb, LifecycleVerb):
        verb = LifecycleVerb.parse(verb)

    if verb is LifecycleVerb.PURGE:
        logger.info("Purging agent runtime artifacts")
        return _purge(paths)

    logger.info("Lifecycle verb %s: keeping agent runtime artifacts", verb.value)
    return LifecycleResult(verb=verb, ok=True)
