"""
Central path configuration for the LUCID agent package hooks.

Every location the hooks read, write or remove is derived here from a single
LifecycleConfig, so tests can relocate the whole layout into a temp directory.

Path Structure (defaults):
    /etc/mosquitto/
    ├── mosquitto.conf     (broker root config, read-modify-write)
    └── conf.d/            (broker drop-ins, anchor for our include)
    /etc/lucid/
    └── mosquitto-conf/    (agent broker overrides, referenced only)
    /home/lucid/lucid-agent-core/
    ├── data/
    │   └── agent_identity.json
    └── operations/        (generated at runtime, removed on purge)
        ├── c8y/
        ├── az/
        └── aws/
    /run/lock/
    └── lucid-mapper-{c8y,az,aws}.lock

Usage:
    from lucid_agent_lifecycle.paths import get_paths

    paths = get_paths()
    conf = paths.broker_conf_path
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from lucid_agent_lifecycle.config import LifecycleConfig, load_config

# One long-running mapper process per cloud connector, each holding its own lock.
CLOUD_CONNECTORS = ("c8y", "az", "aws")

INCLUDE_DIR_KEYWORD = "include_dir"


@dataclass(frozen=True, slots=True)
class Paths:
    """
    Immutable container for all filesystem paths used by the hooks.

    All paths are absolute.
    """

    base_dir: Path
    data_dir: Path
    operations_dir: Path
    config_dir: Path
    override_dir: Path
    broker_conf_path: Path
    broker_dropin_dir: Path
    lock_dir: Path

    @property
    def identity_path(self) -> Path:
        """Path to the agent identity file written once by init."""
        return self.data_dir / "agent_identity.json"

    @property
    def lock_paths(self) -> tuple[Path, ...]:
        """Lock file of every known cloud mapper process."""
        return tuple(self.lock_dir / f"lucid-mapper-{c}.lock" for c in CLOUD_CONNECTORS)

    @property
    def override_directive(self) -> str:
        """Broker config line that includes the agent override directory."""
        return f"{INCLUDE_DIR_KEYWORD} {self.override_dir}"

    @property
    def dropin_directive(self) -> str:
        """Broker config line that includes the broker's own drop-in directory."""
        return f"{INCLUDE_DIR_KEYWORD} {self.broker_dropin_dir}"


def build_paths(cfg: Optional[LifecycleConfig] = None) -> Paths:
    """
    Build Paths object from configuration.

    Args:
        cfg: Lifecycle configuration. Defaults to load_config() with env files
             disabled, so only process environment overrides apply.

    Returns:
        Immutable Paths object with all filesystem paths.
    """
    if cfg is None:
        cfg = load_config(dotenv_enabled=False)

    return Paths(
        base_dir=cfg.base_dir,
        data_dir=cfg.base_dir / "data",
        operations_dir=cfg.base_dir / "operations",
        config_dir=cfg.config_dir,
        override_dir=cfg.config_dir / "mosquitto-conf",
        broker_conf_path=cfg.broker_conf_path,
        broker_dropin_dir=cfg.broker_dropin_dir,
        lock_dir=cfg.lock_dir,
    )


# Global instance (lazy-initialized)
_paths: Optional[Paths] = None


def get_paths() -> Paths:
    """
    Get the global Paths instance.

    Lazily initializes on first call using build_paths() defaults.
    """
    global _paths
    if _paths is None:
        _paths = build_paths()
    return _paths


def set_paths(paths: Paths) -> None:
    """Set the global Paths instance (CLI startup, tests)."""
    global _paths
    _paths = paths


def reset_paths() -> None:
    """Forces get_paths() to rebuild from defaults on next call."""
    global _paths
    _paths = None
