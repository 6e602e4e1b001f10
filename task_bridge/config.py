"""Configuration helpers: safe to import from anywhere.

Call init(data_dir) once at startup before accessing any paths.
"""

import json
import os
from pathlib import Path
from typing import Any


_data_dir: Path | None = None


def default_data_dir() -> Path:
    """$TASK_BRIDGE_DIR, or ~/.local/share/task-bridge."""
    env = os.environ.get("TASK_BRIDGE_DIR")
    if env:
        return Path(env).expanduser().resolve()
    return Path("~/.local/share/task-bridge").expanduser()


def init(data_dir: Path) -> None:
    """Set the data directory. Must be called before any other config access."""
    global _data_dir
    _data_dir = Path(data_dir)


def data_dir() -> Path:
    """Get the data directory. Raises if init() hasn't been called."""
    if _data_dir is None:
        raise RuntimeError("config.init() not called")
    return _data_dir


def inbox_dir() -> Path:
    return data_dir() / "inbox"


def ensure_dirs() -> None:
    """Ensure the inbox and log directories exist.

    The queue file's directory is left alone; the store creates it on first append.
    """
    dd = data_dir()
    (dd / "inbox").mkdir(parents=True, exist_ok=True)
    (dd / "logs").mkdir(parents=True, exist_ok=True)


# Bridge config: read from the data dir, cached with mtime check
_bridge_config_cache: dict[str, Any] | None = None
_bridge_config_mtime: float = 0.0
_bridge_config_file: Path | None = None

# Defaults if bridge_config.json is missing or incomplete.
_BRIDGE_CONFIG_DEFAULTS: dict[str, Any] = {
    # Queue
    "queue_file": "tasks.org",
    # Popup
    "notification_timeout": 10,
    "dismiss_keys": ["Escape", "q"],
    "agent_label_prefix": "*claude",
    # Hook setup
    "session_env_var": "CLAUDE_BUFFER_NAME",
    "client_executable": "task-bridge",
    "hook_events": ["Notification", "Stop"],
    "dedupe_seconds": 2,
    "settings_file": "~/.claude/settings.json",
}


def get_bridge_config() -> dict[str, Any]:
    """Load bridge config from the data dir, with mtime caching and defaults."""
    global _bridge_config_cache, _bridge_config_mtime, _bridge_config_file
    config_file = data_dir() / "bridge_config.json"
    try:
        mtime = config_file.stat().st_mtime
    except OSError:
        mtime = 0.0
    if _bridge_config_cache is None or mtime != _bridge_config_mtime or config_file != _bridge_config_file:
        config = dict(_BRIDGE_CONFIG_DEFAULTS)
        if config_file.exists():
            try:
                loaded = json.loads(config_file.read_text())
                if isinstance(loaded, dict):
                    config.update(loaded)
            except (OSError, json.JSONDecodeError):
                pass
        _bridge_config_cache = config
        _bridge_config_mtime = mtime
        _bridge_config_file = config_file
    return _bridge_config_cache


def queue_path() -> Path:
    """Resolve the queue file; relative paths live under the data dir."""
    path = Path(get_bridge_config()["queue_file"]).expanduser()
    if not path.is_absolute():
        path = data_dir() / path
    return path


def settings_path() -> Path:
    """Hook settings file the installer writes to."""
    return Path(get_bridge_config()["settings_file"]).expanduser()
