"""
One-time agent state initialization.

Safe to call on every install: directories are created with exist_ok and the
identity file is only written when absent. Existence of the identity file is
the only record of "already initialized"; nothing else tracks first-run state.
"""

from __future__ import annotations

import json
import logging
import os
import pwd
import shutil
import socket
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from lucid_agent_lifecycle.core.atomic import atomic_write_text
from lucid_agent_lifecycle.paths import CLOUD_CONNECTORS, Paths

logger = logging.getLogger(__name__)

IDENTITY_SCHEMA = "lucid.agent.identity/1"


class AgentInitError(RuntimeError):
    """Raised when agent state cannot be initialized."""


@dataclass(frozen=True, slots=True)
class InitResult:
    identity_path: Path
    created: bool
    agent_id: str


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _default_agent_id() -> str:
    return os.environ.get("AGENT_USERNAME") or socket.gethostname()


def _state_dirs(paths: Paths) -> list[Path]:
    dirs = [paths.base_dir, paths.data_dir, paths.operations_dir]
    dirs.extend(paths.operations_dir / c for c in CLOUD_CONNECTORS)
    return dirs


def _resolve_owner(agent_user: Optional[str]) -> Optional[pwd.struct_passwd]:
    if not agent_user:
        return None
    if os.geteuid() != 0:
        logger.debug("Not running as root; leaving state owned by uid=%s", os.geteuid())
        return None
    try:
        return pwd.getpwnam(agent_user)
    except KeyError:
        logger.debug("User %s does not exist; leaving state owned by root", agent_user)
        return None


def _read_agent_id(identity_path: Path) -> str:
    try:
        with identity_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        # Present but unreadable still counts as initialized.
        logger.warning("Agent identity at %s is unreadable; leaving it as is", identity_path)
        return ""
    if isinstance(data, dict) and isinstance(data.get("agent_id"), str):
        return data["agent_id"]
    return ""


def init_agent_state(paths: Paths, *, agent_user: Optional[str] = None) -> InitResult:
    """
    Create the minimal on-disk state the agent needs, once.

    Args:
        paths: Layout to initialize.
        agent_user: Service user to hand ownership to when running as root.

    Returns:
        InitResult with created=False when the identity already existed.

    Raises:
        AgentInitError: If a directory or the identity file cannot be written.
    """
    owner = _resolve_owner(agent_user)

    try:
        for d in _state_dirs(paths):
            d.mkdir(parents=True, exist_ok=True)
            if owner is not None:
                shutil.chown(d, user=owner.pw_uid, group=owner.pw_gid)
    except OSError as exc:
        raise AgentInitError(f"failed to create agent directories: {exc}") from exc

    identity_path = paths.identity_path
    if identity_path.exists():
        agent_id = _read_agent_id(identity_path)
        logger.info("Agent state already initialized at %s", identity_path)
        return InitResult(identity_path=identity_path, created=False, agent_id=agent_id)

    agent_id = _default_agent_id()
    identity = {
        "agent_id": agent_id,
        "created_at": _utc_iso(),
        "schema": IDENTITY_SCHEMA,
    }

    try:
        atomic_write_text(identity_path, json.dumps(identity, indent=2, sort_keys=True) + "\n")
        identity_path.chmod(0o640)
        if owner is not None:
            shutil.chown(identity_path, user=owner.pw_uid, group=owner.pw_gid)
    except OSError as exc:
        raise AgentInitError(f"failed to write {identity_path}: {exc}") from exc

    logger.info("Initialized agent state for %s at %s", agent_id, identity_path)
    return InitResult(identity_path=identity_path, created=True, agent_id=agent_id)
