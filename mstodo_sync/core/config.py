"""
Configuration management for mstodo-sync.
"""

import os
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError
from .models import SyncConfig
from .paths import get_path_manager


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return get_path_manager().config_path


def load_config(config_path: Optional[str] = None) -> SyncConfig:
    """
    Load configuration from file or return defaults.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        SyncConfig object
    """
    if config_path is None:
        config_path = str(get_default_config_path())

    return SyncConfig.load_from_file(config_path)


def save_config(config: SyncConfig, config_path: Optional[str] = None) -> None:
    """
    Save configuration to file.

    Args:
        config: SyncConfig object to save
        config_path: Optional path to save to. Uses default if not provided.

    Raises:
        ConfigurationError: If the file could not be written
    """
    if config_path is None:
        get_path_manager().ensure_directories()
        config_path = str(get_default_config_path())

    config_dir = os.path.dirname(os.path.abspath(os.path.expanduser(config_path)))
    try:
        os.makedirs(config_dir, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(f"Could not create configuration directory {config_dir}: {exc}") from exc

    if not config.save_to_file(config_path):
        raise ConfigurationError(f"Could not write configuration to {config_path}")


def get_log_dir() -> Path:
    """Get the log directory."""
    manager = get_path_manager()
    manager.ensure_directories()
    return manager.log_dir


def get_log_path() -> Path:
    """Get the log file used by ``--log-file``."""
    get_log_dir()
    return get_path_manager().log_path
