"""Configuration management for the guitar tuner components."""

import copy
import json
from pathlib import Path
from typing import Dict, Any, Optional, Union

from ..logging_config import get_logger

logger = get_logger(__name__)


class ConfigManager:
    """Named component configurations with optional overrides from a JSON file.

    The file is only read; changes made through :meth:`update_config` live in
    memory for the lifetime of the process.
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """Initialize the configuration manager.

        Args:
            config_file: JSON file mapping configuration names to overrides, or None

        Raises:
            ValueError: If the file is not valid JSON or names an unknown configuration
        """
        # Default configurations
        self.default_configs: Dict[str, Dict[str, Any]] = {
            "recorder": {
                "sample_rate": 44100,
                "buffer_size": 4096,
                "device_id": None,
            },
            "pitch_detector": {
                "max_frequency": 1325.0,
                "filter_order": 255,
                "maxima_threshold": 0.85,
                "frequency_max_difference": 5.0,
                "max_harmonic_degree": 5,
            },
            "tuner": {
                "frame_rate": 2.0,
                "tuning_notes": ["E4", "B3", "G3", "D3", "A2", "E2"],
            },
        }

        self.configs: Dict[str, Dict[str, Any]] = copy.deepcopy(self.default_configs)

        if config_file is not None:
            self.load_config(config_file)

    def load_config(self, config_file: Union[str, Path]) -> None:
        """Apply overrides from a JSON file.

        Args:
            config_file: Path of a JSON object such as ``{"tuner": {"frame_rate": 4}}``
        """
        path = Path(config_file)
        try:
            with open(path, "r") as f:
                overrides = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid configuration file {path}: {e}") from e

        if not isinstance(overrides, dict):
            raise ValueError(f"Configuration file {path} must contain a JSON object")

        for name, updates in overrides.items():
            if name not in self.configs:
                raise ValueError(f"Unknown configuration '{name}' in {path}")
            self.configs[name].update(updates)

        logger.info(f"Loaded configuration from {path}")

    def get_config(self, name: str) -> Dict[str, Any]:
        """Get a copy of the configuration by name.

        Raises:
            KeyError: If the configuration does not exist
        """
        if name not in self.configs:
            raise KeyError(f"Unknown configuration: {name}")
        return copy.deepcopy(self.configs[name])

    def update_config(self, name: str, updates: Dict[str, Any]) -> None:
        """Update a configuration in memory.

        Values of None are ignored, so unset command line options can be
        passed straight through.
        """
        if name not in self.configs:
            raise KeyError(f"Unknown configuration: {name}")

        self.configs[name].update({k: v for k, v in updates.items() if v is not None})
        logger.debug(f"Updated configuration '{name}': {self.configs[name]}")

    def reset_config(self, name: str) -> None:
        """Reset a configuration to its defaults."""
        if name not in self.default_configs:
            raise KeyError(f"Unknown configuration: {name}")

        self.configs[name] = copy.deepcopy(self.default_configs[name])
