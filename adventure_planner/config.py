"""
Configuration management for Adventure Planner.

Handles persistent configuration including:
- Recently opened adventure files
- The last directory used in open/save dialogs
- The port the editor UI listens on

Config is stored in config.json inside the application directory.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from adventure_planner.paths import get_config_path

logger = logging.getLogger(__name__)

MAX_RECENT_FILES = 10
DEFAULT_PORT = 8081
PORT_ENV_VAR = "ADVENTURE_PLANNER_PORT"


def load_config() -> dict:
    """Load configuration from config.json."""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable config {config_path}: {e}")
            return {}
        return config if isinstance(config, dict) else {}
    return {}


def save_config(config: dict) -> None:
    """Save configuration to config.json."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def get_recent_files() -> List[str]:
    """Recently opened or saved adventures, most recent first."""
    recent = load_config().get("recent_files", [])
    if not isinstance(recent, list):
        return []
    return [p for p in recent if isinstance(p, str)]


def add_recent_file(path: Union[str, Path]) -> None:
    """Move `path` to the front of the recent files list."""
    path_str = str(Path(path).resolve())
    config = load_config()
    recent = [p for p in get_recent_files() if p != path_str]
    recent.insert(0, path_str)
    config["recent_files"] = recent[:MAX_RECENT_FILES]
    config["last_directory"] = str(Path(path_str).parent)
    save_config(config)


def get_last_directory() -> Optional[str]:
    """Directory of the most recently used adventure, if any."""
    last = load_config().get("last_directory")
    return last if isinstance(last, str) else None


def get_port() -> int:
    """
    Get the port for the editor UI.

    Priority:
    1. Environment variable ADVENTURE_PLANNER_PORT
    2. "port" in config.json
    3. DEFAULT_PORT
    """
    for candidate in (os.environ.get(PORT_ENV_VAR), load_config().get("port")):
        if candidate is None:
            continue
        try:
            return int(candidate)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid port setting: {candidate!r}")
    return DEFAULT_PORT
