"""
Lifecycle hook configuration.

Values come from environment variables, optionally loaded from standard env files.
Package hooks run non-interactively, so every value has a default matching the
system install layout.

Priority (lowest -> highest):
1) /etc/lucid/agent-core.env (system install)
2) ~/.config/lucid-agent-core/.env (user install)
3) process environment variables (always win)
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as _pkg_version
from pathlib import Path
from typing import Iterable

from dotenv import load_dotenv


DEFAULT_BASE_DIR = "/home/lucid/lucid-agent-core"
DEFAULT_CONFIG_DIR = "/etc/lucid"
DEFAULT_BROKER_CONF = "/etc/mosquitto/mosquitto.conf"
DEFAULT_BROKER_DROPIN_DIR = "/etc/mosquitto/conf.d"
DEFAULT_LOCK_DIR = "/run/lock"
DEFAULT_AGENT_USER = "lucid"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ConfigError(ValueError):
    """Raised when configuration is missing or invalid."""


def package_version() -> str:
    try:
        return _pkg_version("lucid-agent-lifecycle")
    except PackageNotFoundError:
        return "0.0.0+dev"


def _env_paths() -> Iterable[Path]:
    # 1) system install
    yield Path(DEFAULT_CONFIG_DIR) / "agent-core.env"

    # 2) user config dir
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", str(Path.home())))
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
    yield base / "lucid-agent-core" / ".env"


def _abs_path_env(key: str, default: str) -> Path:
    raw = os.getenv(key) or default
    p = Path(raw)
    if not p.is_absolute():
        raise ConfigError(f"{key} must be an absolute path: {raw!r}")
    return p


def _log_level_env(key: str, default: str) -> str:
    raw = (os.getenv(key) or default).strip().upper()
    # numeric levels ("10") are accepted, same as core.log_config
    if raw.isdigit():
        return raw
    if raw not in VALID_LOG_LEVELS:
        raise ConfigError(f"Invalid log level for {key}: {raw!r}")
    return raw


@dataclass(frozen=True, slots=True)
class LifecycleConfig:
    base_dir: Path
    config_dir: Path
    broker_conf_path: Path
    broker_dropin_dir: Path
    lock_dir: Path
    agent_user: str
    log_level: str = "INFO"

    @property
    def log_level_no(self) -> int:
        if self.log_level.isdigit():
            return int(self.log_level)
        return int(getattr(logging, self.log_level, logging.INFO))


def load_config(*, dotenv_enabled: bool = True) -> LifecycleConfig:
    """
    Load config by reading env files and then validating environment variables.

    Returns an immutable LifecycleConfig. Raises ConfigError on failure.
    """
    if dotenv_enabled:
        for p in _env_paths():
            if p.is_file():
                # do not override existing env vars; later files can fill missing
                load_dotenv(p, override=False)

    agent_user = os.getenv("LUCID_AGENT_USER") or DEFAULT_AGENT_USER
    if not agent_user.strip():
        raise ConfigError("LUCID_AGENT_USER must not be blank")

    return LifecycleConfig(
        base_dir=_abs_path_env("LUCID_AGENT_BASE_DIR", DEFAULT_BASE_DIR),
        config_dir=_abs_path_env("LUCID_CONFIG_DIR", DEFAULT_CONFIG_DIR),
        broker_conf_path=_abs_path_env("LUCID_BROKER_CONF", DEFAULT_BROKER_CONF),
        broker_dropin_dir=_abs_path_env("LUCID_BROKER_DROPIN_DIR", DEFAULT_BROKER_DROPIN_DIR),
        lock_dir=_abs_path_env("LUCID_LOCK_DIR", DEFAULT_LOCK_DIR),
        agent_user=agent_user.strip(),
        log_level=_log_level_env("LUCID_LOG_LEVEL", "INFO"),
    )
