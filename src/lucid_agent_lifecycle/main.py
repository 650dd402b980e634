"""
LUCID agent package lifecycle entrypoint.

CLI:
  lucid-agent-lifecycle postinst       -> splice broker include + init agent state
  lucid-agent-lifecycle postrm VERB    -> removal hook; purges runtime artifacts on "purge"
  lucid-agent-lifecycle init           -> init agent state only
  lucid-agent-lifecycle check          -> report broker include placement (read-only)

One-shot executables for package maintainer scripts:
  lucid-agent-postinst
  lucid-agent-postrm VERB

Exit codes: 0 ok / accepted no-op, 1 failure, 2 unknown verb or bad usage.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from lucid_agent_lifecycle.config import ConfigError, LifecycleConfig, load_config, package_version
from lucid_agent_lifecycle.paths import build_paths, set_paths

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def _configure_logging(cfg: LifecycleConfig | None = None) -> None:
    """
    Single log level for all loggers.
    Uses cfg.log_level if provided, else LUCID_LOG_LEVEL env, else INFO.
    """
    from lucid_agent_lifecycle.core.log_config import apply_log_level_from_config

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    apply_log_level_from_config(cfg)


_configure_logging()
logger = logging.getLogger(__name__)


def get_version_string() -> str:
    return package_version()


def _load_runtime() -> Optional[LifecycleConfig]:
    """Load config, install the global Paths, apply log level. None on bad config."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return None

    set_paths(build_paths(cfg))
    _configure_logging(cfg)
    return cfg


def cmd_postinst() -> int:
    from lucid_agent_lifecycle.core.agent_init import AgentInitError
    from lucid_agent_lifecycle.core.broker_conf import AnchorNotFoundError, BrokerConfigError
    from lucid_agent_lifecycle.installer import run_postinst
    from lucid_agent_lifecycle.paths import get_paths

    cfg = _load_runtime()
    if cfg is None:
        return EXIT_FAILURE
    paths = get_paths()

    try:
        res = run_postinst(paths, agent_user=cfg.agent_user)
    except AnchorNotFoundError:
        logger.error(
            "%s does not contain %r; broker layout is not as expected, add it and re-run",
            paths.broker_conf_path,
            paths.dropin_directive,
        )
        return EXIT_FAILURE
    except BrokerConfigError as exc:
        logger.error("Broker config update failed: %s", exc)
        return EXIT_FAILURE
    except AgentInitError as exc:
        logger.error("Agent init failed: %s", exc)
        return EXIT_FAILURE

    logger.info(
        "postinst done: broker_conf_changed=%s agent_state_created=%s",
        res.overlay.changed,
        res.init.created,
    )
    return EXIT_OK


def cmd_postrm(raw_verb: str) -> int:
    from lucid_agent_lifecycle.lifecycle import LifecycleVerb, UnknownVerbError, handle_lifecycle
    from lucid_agent_lifecycle.paths import get_paths

    # Validate the verb before touching config or disk.
    try:
        verb = LifecycleVerb.parse(raw_verb)
    except UnknownVerbError as exc:
        logger.error("%s", exc)
        return EXIT_USAGE

    if _load_runtime() is None:
        return EXIT_FAILURE

    res = handle_lifecycle(verb, get_paths())
    if not res.ok:
        for err in res.errors:
            logger.error("postrm %s: %s", verb.value, err)
        return EXIT_FAILURE

    logger.info("postrm %s done: removed %d item(s)", verb.value, len(res.removed))
    return EXIT_OK


def cmd_init() -> int:
    from lucid_agent_lifecycle.core.agent_init import AgentInitError, init_agent_state
    from lucid_agent_lifecycle.paths import get_paths

    cfg = _load_runtime()
    if cfg is None:
        return EXIT_FAILURE

    try:
        res = init_agent_state(get_paths(), agent_user=cfg.agent_user)
    except AgentInitError as exc:
        logger.error("Agent init failed: %s", exc)
        return EXIT_FAILURE

    print(f"agent_id={res.agent_id} created={res.created} identity={res.identity_path}")
    return EXIT_OK


def cmd_check() -> int:
    from lucid_agent_lifecycle.core.broker_conf import BrokerConfigError, inspect_broker_conf
    from lucid_agent_lifecycle.paths import get_paths

    if _load_runtime() is None:
        return EXIT_FAILURE
    paths = get_paths()

    try:
        status = inspect_broker_conf(
            paths.broker_conf_path,
            override=paths.override_directive,
            anchor=paths.dropin_directive,
        )
    except BrokerConfigError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE

    print(f"Broker config: {paths.broker_conf_path}")
    print(f"  override include present: {status.override_present}")
    print(f"  drop-in include present:  {status.anchor_present}")
    print(f"  correctly ordered:        {status.correctly_ordered}")
    return EXIT_OK if status.correctly_ordered else EXIT_FAILURE


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lucid-agent-lifecycle")
    p.add_argument("--version", action="version", version=get_version_string())

    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser(
        "postinst",
        help="Include the agent override dir in mosquitto.conf and init agent state",
    )

    postrm_parser = sub.add_parser(
        "postrm",
        help="Package removal hook (purge removes generated operations and lock files)",
    )
    postrm_parser.add_argument("verb", help="Lifecycle verb passed by the package manager")

    sub.add_parser("init", help="Initialize agent state (no-op if already initialized)")
    sub.add_parser("check", help="Report whether mosquitto.conf includes the agent override dir in order")

    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.cmd == "postinst":
        raise SystemExit(cmd_postinst())

    if args.cmd == "postrm":
        raise SystemExit(cmd_postrm(args.verb))

    if args.cmd == "init":
        raise SystemExit(cmd_init())

    if args.cmd == "check":
        raise SystemExit(cmd_check())

    raise SystemExit(EXIT_USAGE)


def postinst_main() -> None:
    main(["postinst", *sys.argv[1:]])


def postrm_main() -> None:
    main(["postrm", *sys.argv[1:]])


if __name__ == "__main__":
    main()
