"""Load ~/.shelf.config (TOML) with env-var overrides."""
from __future__ import annotations
import os
try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]  # Python < 3.11 backport
from pathlib import Path
from typing import Any

_DEFAULT: dict[str, Any] = {
    "server": {
        "url": "http://localhost:8765",
    },
    "scan": {
        "root": "./data",
        "schedule": "*/5 * * * *",
    },
}

# Any of these in scan.schedule turns the automatic scan off
SCHEDULE_DISABLED = frozenset({"", "off", "none", "disabled"})


def _deep_merge(base: dict, override: dict) -> dict:
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def load_config() -> dict[str, Any]:
    cfg = dict(_DEFAULT)
    for section in cfg:
        cfg[section] = dict(cfg[section])

    # Config file resolution order:
    #   1. SHELF_CONFIG_PATH env var (used in Docker to point into /data)
    #   2. ~/.shelf.config (default for local installs)
    config_path = Path(os.environ["SHELF_CONFIG_PATH"]) if "SHELF_CONFIG_PATH" in os.environ else Path.home() / ".shelf.config"
    if config_path.exists():
        with open(config_path, "rb") as f:
            user_cfg = tomllib.load(f)
        cfg = _deep_merge(cfg, user_cfg)

    # Env var overrides
    if url := os.environ.get("SHELF_SERVER"):
        cfg["server"]["url"] = url
    if root := os.environ.get("SCAN_DIRECTORY"):
        cfg["scan"]["root"] = root
    if "SHELF_SCAN_SCHEDULE" in os.environ:
        cfg["scan"]["schedule"] = os.environ["SHELF_SCAN_SCHEDULE"]

    return cfg


# Module-level singleton, loaded once per process
_config: dict[str, Any] | None = None


def get_config() -> dict[str, Any]:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    global _config
    _config = None


def get_server_url() -> str:
    return get_config()["server"]["url"]


def get_scan_config() -> dict[str, Any]:
    return get_config()["scan"]


def get_scan_root() -> str:
    return get_scan_config()["root"]


def get_scan_schedule() -> str | None:
    """Return the cron expression for automatic scans, or None when disabled."""
    raw = get_scan_config().get("schedule")
    if raw is None:
        return None
    schedule = str(raw).strip()
    if schedule.lower() in SCHEDULE_DISABLED:
        return None
    return schedule
