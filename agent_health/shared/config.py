"""Configuration loader for the agent health tools."""

import json
import os
from pathlib import Path
from typing import Any

CONFIG_ENV = "AGENT_HEALTH_CONFIG"
REPORT_ENV = "AGENT_HEALTH_REPORT"

DEFAULT_CONFIG: dict[str, Any] = {
    "report_path": "agent-health.md",
    "incident_log_path": "agent-health-incidents.md",
    "lock_dir": "/tmp/agent-health-dashboard.lock",
    "lock_timeout_seconds": 10,
    "state_backend": "file",
    "state_dir": "/tmp/agent-health-state",
    "uptime_dir": "/tmp",
    "alert_marker_dir": "/tmp",
    "redis_url": "redis://localhost:6379",
    "debounce_seconds": 1800,
    "warning_minutes": 30,
    "critical_minutes": 60,
    "known_agents": ["Duncan", "Leto", "Stilgar"],
    "timezone": None,
    "alert_transport": "openclaw",
    "gateway_url": "ws://127.0.0.1:18789",
    "gateway_token": "",
    "alert_on_unknown": True,
    "check_interval_seconds": 900,
    "default_channel": "telegram",
    "log_file": None,
}


def load_agent_config(config_path: str, defaults: dict[str, Any] | None = None) -> dict[str, Any]:
    """Load configuration from a JSON file, merging with optional defaults.

    Args:
        config_path: Path to the JSON configuration file.
        defaults: Optional dictionary of default values. File values override defaults.

    Returns:
        Merged configuration dictionary.

    Raises:
        FileNotFoundError: If the config file does not exist.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        config = json.load(f)

    if defaults:
        merged = {**defaults, **config}
        return merged

    return config


def load_health_config(config_path: str | None = None) -> dict[str, Any]:
    """Resolve the effective configuration for a command invocation.

    The file comes from ``config_path`` or ``$AGENT_HEALTH_CONFIG``; with
    neither, the built-in defaults are used. ``$AGENT_HEALTH_REPORT``
    overrides the report location either way.
    """
    config_path = config_path or os.environ.get(CONFIG_ENV)
    if config_path:
        config = load_agent_config(config_path, defaults=DEFAULT_CONFIG)
    else:
        config = dict(DEFAULT_CONFIG)

    report_override = os.environ.get(REPORT_ENV)
    if report_override:
        config["report_path"] = report_override

    return config
