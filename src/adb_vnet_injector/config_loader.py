"""
Configuration Loader Module

Handles loading YAML run configuration files for VNet injection runs.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

INPUT_KEYS = ('workspace_id', 'vnet_id', 'public_subnet', 'private_subnet')


class ConfigLoader:
    """Load and parse YAML run configuration files."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the ConfigLoader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = {}

    def load(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Dictionary containing the parsed configuration

        Raises:
            FileNotFoundError: If the configuration file doesn't exist
            yaml.YAMLError: If the YAML is malformed
            ValueError: If the document is not a mapping
        """
        path = config_path or self.config_path

        if not path:
            raise ValueError("No configuration path provided")

        config_file = Path(path)

        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Error parsing YAML configuration: {e}")

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")

        self.config = loaded
        return self.config

    def merge_overrides(self, overrides: Dict[str, Any]) -> Dict[str, Any]:
        """
        Overlay values given on the command line.

        Args:
            overrides: Values to apply; None entries are ignored

        Returns:
            The merged configuration
        """
        for key, value in overrides.items():
            if value is not None:
                self.config[key] = value
        return self.config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key.

        Args:
            key: Configuration key (supports dot notation)
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def missing_inputs(self) -> list:
        """Return the required inputs that are not set."""
        return [key for key in INPUT_KEYS if not self.config.get(key)]

    def to_dict(self) -> Dict[str, Any]:
        return self.config.copy()
