"""
Configuration management for the audit service
"""

import copy
import logging
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

logger = logging.getLogger(__name__)


DEFAULT_CONFIG = {
    "storage": {
        "backend": "memory",
        "sqlite_path": "data/verihub.db"
    },
    "data": {
        # None means the seed files packaged with verihub
        "dir": None,
        "seed_on_start": True
    },
    "rules": {
        "path": None
    },
    "runner": {
        "max_workers": 4
    },
    "logging": {
        # Command output goes to stdout; keep stderr quiet unless asked
        "level": "WARNING"
    },
    "web": {
        "host": "127.0.0.1",
        "port": 8080
    }
}


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two configuration dictionaries; override wins on leaves."""
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = copy.deepcopy(value)

    return result


def read_yaml_mapping(path: Path) -> Optional[Dict[str, Any]]:
    """
    Read a YAML file that must contain a mapping.

    Returns None (after logging) when the file is unreadable or not a mapping,
    so callers can fall back to their defaults.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load config from {path}: {e}")
        return None

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error(f"Config file {path} does not contain a mapping, ignoring it")
        return None
    return data


class ConfigManager:
    """Manages application configuration for the audit service"""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to YAML config file, if None uses defaults
        """
        self.config = copy.deepcopy(DEFAULT_CONFIG)

        if config_path and config_path.exists():
            self.load_config(config_path)
        elif config_path:
            logger.warning(f"Config file not found: {config_path}, using defaults")

    def load_config(self, config_path: Path) -> None:
        """Load configuration from YAML file."""
        file_config = read_yaml_mapping(config_path)
        if file_config is None:
            return

        self.config = merge_dicts(DEFAULT_CONFIG, file_config)
        logger.info(f"Loaded configuration from {config_path}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key_path: Dot-separated path like 'storage.backend'
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key_path: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path like 'web.port'
            value: Value to set
        """
        keys = key_path.split('.')
        config = self.config

        for key in keys[:-1]:
            if key not in config:
                config[key] = {}
            config = config[key]

        config[keys[-1]] = value

    def path(self, key_path: str) -> Optional[Path]:
        """Get a configuration value as a Path, or None when unset."""
        value = self.get(key_path)
        return Path(value) if value else None

    def save_config(self, config_path: Path) -> None:
        """Save current configuration to YAML file."""
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.config, f, default_flow_style=False, indent=2)
        logger.info(f"Saved configuration to {config_path}")

    def to_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary."""
        return copy.deepcopy(self.config)
