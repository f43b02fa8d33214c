"""
Path utilities for Adventure Planner.

Application data (config.json, the default adventures folder) lives in a
per-user directory:
- ADVENTURE_PLANNER_HOME, when set
- otherwise ~/.adventure_planner
"""

import os
from pathlib import Path

HOME_ENV_VAR = "ADVENTURE_PLANNER_HOME"


def get_app_dir() -> Path:
    """
    Get the application data directory.

    This is where config.json and the default adventures/ folder live.
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".adventure_planner"


def get_config_path() -> Path:
    """Get the path to the config file (recent files, preferences)."""
    return get_app_dir() / "config.json"


def get_documents_dir() -> Path:
    """Get the default folder offered when saving a new adventure."""
    return get_app_dir() / "adventures"


def ensure_documents_dir() -> Path:
    """
    Ensure the adventures directory exists, creating it if necessary.
    Returns the path to the directory.
    """
    docs_dir = get_documents_dir()
    docs_dir.mkdir(parents=True, exist_ok=True)
    return docs_dir
