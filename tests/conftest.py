"""
Pytest configuration and shared fixtures
"""
import os
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from lucid_agent_lifecycle.config import LifecycleConfig  # noqa: E402
from lucid_agent_lifecycle.paths import build_paths, reset_paths  # noqa: E402


SAMPLE_MOSQUITTO_CONF = """\
# Place your local configuration in /etc/mosquitto/conf.d/
#
# A full description of the configuration file is at
# /usr/share/doc/mosquitto/examples/mosquitto.conf.example

pid_file /run/mosquitto/mosquitto.pid

persistence true
persistence_location /var/lib/mosquitto/

log_dest file /var/log/mosquitto/mosquitto.log

include_dir {dropin}
"""


@pytest.fixture
def lifecycle_config(tmp_path: Path) -> LifecycleConfig:
    """Config with every location redirected under tmp_path."""
    return LifecycleConfig(
        base_dir=tmp_path / "home" / "lucid" / "lucid-agent-core",
        config_dir=tmp_path / "etc" / "lucid",
        broker_conf_path=tmp_path / "etc" / "mosquitto" / "mosquitto.conf",
        broker_dropin_dir=tmp_path / "etc" / "mosquitto" / "conf.d",
        lock_dir=tmp_path / "run" / "lock",
        agent_user="lucid",
        log_level="DEBUG",
    )


@pytest.fixture
def sandbox_paths(lifecycle_config):
    """Paths built from lifecycle_config; global paths reset afterwards."""
    yield build_paths(lifecycle_config)
    reset_paths()


@pytest.fixture
def broker_conf(sandbox_paths):
    """Stock mosquitto.conf whose drop-in include points into the sandbox."""
    path = sandbox_paths.broker_conf_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(SAMPLE_MOSQUITTO_CONF.format(dropin=sandbox_paths.broker_dropin_dir))
    return path


@pytest.fixture
def sandbox_env(monkeypatch, lifecycle_config):
    """Point the CLI's env-driven config at the sandbox."""
    env_vars = {
        'LUCID_AGENT_BASE_DIR': str(lifecycle_config.base_dir),
        'LUCID_CONFIG_DIR': str(lifecycle_config.config_dir),
        'LUCID_BROKER_CONF': str(lifecycle_config.broker_conf_path),
        'LUCID_BROKER_DROPIN_DIR': str(lifecycle_config.broker_dropin_dir),
        'LUCID_LOCK_DIR': str(lifecycle_config.lock_dir),
        'LUCID_AGENT_USER': lifecycle_config.agent_user,
        'LUCID_LOG_LEVEL': lifecycle_config.log_level,
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    # Keep a developer's ~/.config/lucid-agent-core/.env out of the tests.
    monkeypatch.setenv('XDG_CONFIG_HOME', str(lifecycle_config.base_dir.parent / '.config'))

    yield env_vars
    reset_paths()


@pytest.fixture
def populated_runtime(sandbox_paths):
    """Generated operations and every mapper lock file, as left by a running agent."""
    ops = sandbox_paths.operations_dir
    (ops / "c8y").mkdir(parents=True)
    (ops / "c8y" / "c8y_Restart").write_text("[exec]\ncommand = \"reboot\"\n")
    (ops / "az").mkdir()

    sandbox_paths.lock_dir.mkdir(parents=True, exist_ok=True)
    for lock in sandbox_paths.lock_paths:
        lock.write_text("4242\n")

    return sandbox_paths
