"""
Configuration management for punch.

This module handles user configuration, data directories, and settings.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, cast

from platformdirs import user_config_dir, user_data_dir

logger = logging.getLogger(__name__)

APP_NAME = "punch"
DATA_DIR_ENV = "PUNCH_DATA_DIR"


class ConfigManager:
    """Manages punch configuration and data directories."""

    def __init__(self) -> None:
        """Initialize configuration manager."""
        self.app_name = APP_NAME
        self.config_dir = Path(user_config_dir(self.app_name))
        self.data_dir = Path(user_data_dir(self.app_name))
        self.config_file = self.config_dir / "config.json"

        # Ensure directories exist
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Default configuration
        self.default_config: Dict[str, Any] = {
            "data_directory": str(self.data_dir),
            "log_level": "INFO",
            "log_max_bytes": 1_000_000,
            "log_backup_count": 3,
            "display": {
                "max_task_name_length": 50,
            },
        }

        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file, creating default if it doesn't exist."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r") as f:
                    loaded_config = json.load(f)

                # Merge with defaults to ensure all keys exist
                config = copy.deepcopy(self.default_config)
                config.update(loaded_config)
                return config

            except (json.JSONDecodeError, IOError) as e:
                logger.warning("Could not load config file %s: %s", self.config_file, e)
                logger.warning("Using default configuration")
                return copy.deepcopy(self.default_config)

        self._save_config(self.default_config)
        return copy.deepcopy(self.default_config)

    def _save_config(self, config: Dict[str, Any]) -> None:
        """Save configuration to file."""
        try:
            with open(self.config_file, "w") as f:
                json.dump(config, f, indent=2, sort_keys=True)
        except IOError as e:
            logger.warning("Could not save config file %s: %s", self.config_file, e)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key, with optional default."""
        keys = key.split(".")
        value: Any = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dotted key and persist it."""
        keys = key.split(".")
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        self._save_config(self._config)

    def get_data_dir(self) -> Path:
        """Get the data directory path, honouring the PUNCH_DATA_DIR override."""
        override = os.environ.get(DATA_DIR_ENV)
        if override:
            return Path(override)
        return Path(self.get("data_directory", str(self.data_dir)))

    def get_db_path(self) -> Path:
        """Get the path of the SQLite database file."""
        return self.get_data_dir() / f"{self.app_name}.db"

    def get_log_path(self) -> Path:
        """Get the path of the log file."""
        return self.get_data_dir() / f"{self.app_name}.log"

    def get_log_level(self) -> str:
        """Get the file log level name."""
        return cast(str, self.get("log_level", "INFO")).upper()

    def get_log_max_bytes(self) -> int:
        return cast(int, self.get("log_max_bytes", 1_000_000))

    def get_log_backup_count(self) -> int:
        return cast(int, self.get("log_backup_count", 3))

    def get_max_task_name_length(self) -> int:
        """Get maximum task name length for display."""
        return cast(int, self.get("display.max_task_name_length", 50))

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self._config = copy.deepcopy(self.default_config)
        self._save_config(self._config)


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
