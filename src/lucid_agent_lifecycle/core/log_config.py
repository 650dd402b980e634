"""
Apply log level from hook config or env.

Single log level for all loggers. LifecycleConfig.log_level takes precedence
over LUCID_LOG_LEVEL env.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from lucid_agent_lifecycle.config import LifecycleConfig


def _parse_level(raw: str) -> int:
    if not raw or not str(raw).strip():
        return logging.INFO
    raw = str(raw).strip().upper()
    if raw.isdigit():
        return int(raw)
    return int(getattr(logging, raw, logging.INFO))


def level_from_cfg_or_env(cfg: Optional[LifecycleConfig]) -> int:
    """
    Resolve log level: cfg.log_level if cfg given, else LUCID_LOG_LEVEL env, else INFO.
    """
    if cfg is not None:
        return cfg.log_level_no
    raw = os.environ.get("LUCID_LOG_LEVEL", "").strip()
    return _parse_level(raw) if raw else logging.INFO


def apply_log_level(level: int) -> None:
    """Set root logger level so every module logger uses this level."""
    logging.getLogger().setLevel(level)


def apply_log_level_from_config(cfg: Optional[LifecycleConfig]) -> None:
    """
    Resolve level from config (or env) and apply to root logger.
    Called before config is loaded and again once it is.
    """
    apply_log_level(level_from_cfg_or_env(cfg))
