"""
Package post-install hook for the LUCID agent.

Usage (from the package manager):
  lucid-agent-postinst

Contract:
- Idempotent: safe to re-run after an upgrade or an interrupted run.
- Splices "include_dir <override_dir>" into the broker's mosquitto.conf right
  before the broker's own drop-in include, once.
- Initializes agent state (identity + directories) and never overwrites it.
- The override directory itself is shipped by the package, not created here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from lucid_agent_lifecycle.core.agent_init import InitResult, init_agent_state
from lucid_agent_lifecycle.core.broker_conf import OverlayResult, ensure_override_include
from lucid_agent_lifecycle.paths import Paths

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PostinstResult:
    overlay: OverlayResult
    init: InitResult


def _ensure_broker_overlay(paths: Paths) -> OverlayResult:
    return ensure_override_include(
        paths.broker_conf_path,
        override=paths.override_directive,
        anchor=paths.dropin_directive,
    )


def _ensure_agent_state(paths: Paths, agent_user: str | None) -> InitResult:
    return init_agent_state(paths, agent_user=agent_user)


# =========================
# Public API
# =========================
def run_postinst(paths: Paths, *, agent_user: str | None = None) -> PostinstResult:
    """
    Post-install sequence:
      - ensure the broker config includes the agent override directory
      - initialize agent state (no-op if already initialized)

    Raises:
        AnchorNotFoundError: Broker config lacks its drop-in include; nothing changed.
        BrokerConfigError: Broker config could not be read or written.
        AgentInitError: Agent state could not be created.
    """
    overlay = _ensure_broker_overlay(paths)
    init = _ensure_agent_state(paths, agent_user)

    if overlay.changed:
        logger.info("Broker config updated; restart mosquitto to load %s", paths.override_dir)
    return PostinstResult(overlay=overlay, init=init)
