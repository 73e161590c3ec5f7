"""
Centralized path management for mstodo-sync.

Resolves the working directory that holds the configuration file and logs.
"""

import os
import sys
from pathlib import Path
from typing import Optional
import logging


class PathManager:
    """Manages mstodo-sync file paths."""

    # Directory names
    APP_DIR_NAME = "mstodo-sync"
    HOME_ENV_VAR = "MSTODO_SYNC_HOME"

    # File names
    CONFIG_FILE = "config.json"
    LOG_DIR_NAME = "logs"
    LOG_FILE = "mstodo-sync.log"

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._working_dir: Optional[Path] = None

    def _default_user_dir(self) -> Path:
        """Platform-appropriate per-user data directory."""
        if sys.platform == "darwin":
            return Path.home() / "Library" / "Application Support" / self.APP_DIR_NAME
        if sys.platform.startswith("win"):
            appdata = os.environ.get("APPDATA")
            if appdata:
                return Path(appdata) / self.APP_DIR_NAME
            return Path.home() / "AppData" / "Roaming" / self.APP_DIR_NAME
        xdg = os.environ.get("XDG_CONFIG_HOME")
        if xdg:
            return Path(xdg) / self.APP_DIR_NAME
        return Path.home() / ".config" / self.APP_DIR_NAME

    @property
    def working_dir(self) -> Path:
        """
        Get the working directory for mstodo-sync data.

        Priority order:
        1. MSTODO_SYNC_HOME environment variable (explicit override)
        2. Platform user configuration directory
        """
        if self._working_dir is not None:
            return self._working_dir

        env_override = os.environ.get(self.HOME_ENV_VAR)
        if env_override:
            self._working_dir = Path(env_override).expanduser().resolve()
            self.logger.debug(f"Using {self.HOME_ENV_VAR} override: {self._working_dir}")
        else:
            self._working_dir = self._default_user_dir()

        return self._working_dir

    @property
    def config_path(self) -> Path:
        return self.working_dir / self.CONFIG_FILE

    @property
    def log_dir(self) -> Path:
        return self.working_dir / self.LOG_DIR_NAME

    @property
    def log_path(self) -> Path:
        return self.log_dir / self.LOG_FILE

    def ensure_directories(self) -> None:
        """Create the working and log directories if missing."""
        for directory in (self.working_dir, self.log_dir):
            directory.mkdir(parents=True, exist_ok=True)


# Global instance
_path_manager = None


def get_path_manager() -> PathManager:
    """Get or create the global PathManager instance."""
    global _path_manager
    if _path_manager is None:
        _path_manager = PathManager()
    return _path_manager


def reset_path_manager() -> None:
    """Drop the cached PathManager (used when MSTODO_SYNC_HOME changes)."""
    global _path_manager
    _path_manager = None
