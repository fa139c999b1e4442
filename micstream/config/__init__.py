"""Simple YAML configuration loader for micstream."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_MIME_PREFERENCES = [
    "audio/webm;codecs=opus",
    "audio/webm",
    "audio/ogg;codecs=opus",
    "audio/ogg",
]

DEFAULT_CONFIG: Dict[str, Any] = {
    "audio": {
        "device_index": None,
        "sample_rate": None,
        "channels": None,
        "frames_per_buffer": 1024,
    },
    "encoding": {
        "strategy": "auto",
        "channels": None,
        "bitrate_kbps": 128,
        "quality": 2,
        "mime_preferences": DEFAULT_MIME_PREFERENCES,
    },
    "bridge": {
        "topic": "audio.blocks",
        "max_pending": 0,
        "poll_interval_seconds": 0.1,
    },
    "output": {
        "directory": "recordings",
    },
    "logging": {
        "level": "INFO",
        "file_path": "logs/micstream.log",
        "console_output": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class MicStreamConfig:
    """micstream configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, the built-in
                        defaults are used as-is.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")

        config = _merge(DEFAULT_CONFIG, loaded)

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        output_dir = config['output'].get('directory')
        if output_dir and not os.path.isabs(output_dir):
            config['output']['directory'] = str(config_dir / output_dir)

        log_path = config['logging'].get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'encoding.strategy').

        Args:
            key_path: Dot-separated key path (e.g., 'audio.sample_rate')
            default: Default value if key not found or set to null

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return default if value is None else value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'encoding.strategy')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_output_directory(self) -> str:
        """Get output directory path."""
        output_dir = self.get('output.directory', 'recordings')
        return str(Path(output_dir).absolute())
