"""
Mosquitto root config overlay.

Ensures the broker's mosquitto.conf includes the agent override directory
immediately before the broker's own drop-in include:

    include_dir /etc/lucid/mosquitto-conf
    include_dir /etc/mosquitto/conf.d

Mosquitto refuses to start when per_listener_settings appears after other
security directives, and the agent sets it in its override directory, so the
override must be loaded before any drop-in.

The file is treated as opaque lines; only the two include lines are recognized.
Presence of the override line anywhere is the idempotency guard. It is never
moved once present.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from lucid_agent_lifecycle.core.atomic import atomic_write_text

logger = logging.getLogger(__name__)


class BrokerConfigError(RuntimeError):
    """Raised when the broker config cannot be read or written."""


class AnchorNotFoundError(BrokerConfigError):
    """Raised when the broker's drop-in include line is missing."""


@dataclass(frozen=True, slots=True)
class OverlayResult:
    path: Path
    changed: bool


@dataclass(frozen=True, slots=True)
class OverlayStatus:
    """Read-only view of where the two include lines sit."""

    override_index: Optional[int]
    anchor_index: Optional[int]

    @property
    def override_present(self) -> bool:
        return self.override_index is not None

    @property
    def anchor_present(self) -> bool:
        return self.anchor_index is not None

    @property
    def correctly_ordered(self) -> bool:
        if self.override_index is None or self.anchor_index is None:
            return False
        return self.override_index + 1 == self.anchor_index


def _matches(line: str, directive: str) -> bool:
    return line.strip() == directive


def _line_ending(line: str) -> str:
    if line.endswith("\r\n"):
        return "\r\n"
    return "\n"


def _find(lines: list[str], directive: str) -> Optional[int]:
    for i, line in enumerate(lines):
        if _matches(line, directive):
            return i
    return None


def splice_override(lines: list[str], override: str, anchor: str) -> Optional[list[str]]:
    """
    Insert override right before the first anchor line.

    Args:
        lines: Config lines with their line endings (str.splitlines(keepends=True)).
        override: Override include line, without line ending.
        anchor: Drop-in include line, without line ending.

    Returns:
        New list of lines, or None if override is already present.

    Raises:
        AnchorNotFoundError: If override is absent and anchor never appears.
    """
    if _find(lines, override) is not None:
        return None

    idx = _find(lines, anchor)
    if idx is None:
        raise AnchorNotFoundError(f"anchor line not found: {anchor!r}")

    out = list(lines[:idx])
    out.append(override + _line_ending(lines[idx]))
    out.extend(lines[idx:])
    return out


# Mosquitto does not require UTF-8. Undecodable bytes survive the
# read-modify-write round trip as surrogates.
_ERRORS = "surrogateescape"


def _read_lines(path: Path) -> list[str]:
    try:
        with path.open("r", encoding="utf-8", errors=_ERRORS, newline="") as f:
            return f.read().splitlines(keepends=True)
    except (OSError, UnicodeError) as exc:
        raise BrokerConfigError(f"failed to read {path}: {exc}") from exc


def ensure_override_include(path: Path, override: str, anchor: str) -> OverlayResult:
    """
    Idempotently splice the override include into the broker config at path.

    Returns:
        OverlayResult with changed=False when the override was already present.

    Raises:
        AnchorNotFoundError: Anchor missing; file left unmodified.
        BrokerConfigError: Read or atomic write failed; original file preserved.
    """
    lines = _read_lines(path)

    try:
        new_lines = splice_override(lines, override, anchor)
    except AnchorNotFoundError:
        logger.error("Broker config %s has no %r line; not modifying it", path, anchor)
        raise

    if new_lines is None:
        logger.info("Broker config %s already includes %r", path, override)
        return OverlayResult(path=path, changed=False)

    try:
        atomic_write_text(path, "".join(new_lines), mode_from=path, errors=_ERRORS)
    except (OSError, UnicodeError) as exc:
        raise BrokerConfigError(f"failed to write {path}: {exc}") from exc

    logger.info("Inserted %r before %r in %s", override, anchor, path)
    return OverlayResult(path=path, changed=True)


def inspect_broker_conf(path: Path, override: str, anchor: str) -> OverlayStatus:
    lines = _read_lines(path)
    return OverlayStatus(
        override_index=_find(lines, override),
        anchor_index=_find(lines, anchor),
    )
