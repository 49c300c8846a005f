"""
Configuration management for flomosync.

This module handles loading and accessing configuration values from config.yaml.
It provides a centralized way to manage all settings and makes it easy to
modify behavior without changing code.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional
import logging


class ConfigManager:
    """
    Manages configuration loading and access for flomosync.
    """

    def __init__(self, config_path: str = "config.yaml"):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._config = yaml.safe_load(f) or {}

            logging.info(f"Configuration loaded from {self.config_path}")

        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Failed to load configuration: {e}")
            # Fall back to default configuration
            self._config = self._get_default_config()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values as fallback."""
        return {
            "sync": {
                "plugin_name": "flomo-sync",
                "inbox_name": "Flomo Inbox",
                "note_tag": "Flomo Note",
                "after_date": None
            },
            "source": {
                "snapshot_path": "flomo_snapshot.json",
                "ready_delay": 1.0,
                "timeout": 30.0,
                "login_url": "https://v.flomoapp.com/mine"
            },
            "database": {
                "filename": "flomosync.db",
                "assets_dir": "assets"
            },
            "paths": {
                "state_file": "flomosync_state.json",
                "log_file": "flomosync.log"
            },
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "l10n": {
                "locale": "en"
            }
        }

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key_path: Dot-separated path to the configuration value (e.g., "sync.note_tag")
            default: Default value if key is not found

        Returns:
            The configuration value

        Examples:
            config.get("sync.inbox_name")  # Returns "Flomo Inbox"
            config.get("source.ready_delay")  # Returns 1.0
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get an entire configuration section.

        Args:
            section: Name of the configuration section

        Returns:
            Dictionary containing the section configuration
        """
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    # Convenience properties for commonly used values

    @property
    def plugin_name(self) -> str:
        """Identity the sync cursor is stored under."""
        return self.get("sync.plugin_name", "flomo-sync")

    @property
    def snapshot_path(self) -> str:
        """Get the path of the Flomo local storage snapshot."""
        return self.get("source.snapshot_path", "flomo_snapshot.json")

    @property
    def source_ready_delay(self) -> float:
        """Seconds to wait for the source to become ready after opening it."""
        return self.get("source.ready_delay", 1.0)

    @property
    def source_timeout(self) -> float:
        """Get asset download timeout."""
        return self.get("source.timeout", 30.0)

    @property
    def login_url(self) -> str:
        """Get the page where users sign in to Flomo."""
        return self.get("source.login_url", "https://v.flomoapp.com/mine")

    @property
    def database_filename(self) -> str:
        """Get database filename."""
        return self.get("database.filename", "flomosync.db")

    @property
    def assets_directory(self) -> str:
        """Get the directory uploaded assets are written to."""
        return self.get("database.assets_dir", "assets")

    @property
    def state_filename(self) -> str:
        """Get state file name."""
        return self.get("paths.state_file", "flomosync_state.json")

    @property
    def log_filename(self) -> str:
        """Get log file name."""
        return self.get("paths.log_file", "flomosync.log")

    @property
    def locale(self) -> str:
        return self.get("l10n.locale", "en")


# Global configuration instance
config = ConfigManager()


def get_config() -> ConfigManager:
    """
    Get the global configuration instance.

    Returns:
        The global ConfigManager instance
    """
    return config
