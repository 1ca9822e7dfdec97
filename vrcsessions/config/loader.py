"""
Configuration loader for YAML config files.

A config file may contain two top-level sections:

    settings:
      photo_dir: ~/Pictures/VRChat
      newest_first: false
    patterns:
      world_join: "[Behaviour] Joining "
      player_leave:
        marker: "[Behaviour] OnPlayerLeft "
        excludes: ["OnPlayerLeftRoom"]
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from vrcsessions.errors import ConfigError
from vrcsessions.parser.patterns import DEFAULT_REGISTRY, PatternRegistry

from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Loads configuration from YAML files and builds settings and pattern tables."""

    @staticmethod
    def search_paths() -> list:
        return [
            Path("vrcsessions.yaml"),
            Path("config/vrcsessions.yaml"),
            Path.home() / ".vrcsessions" / "config.yaml",
        ]

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Explicit config file. If None, looks for:
                        1. vrcsessions.yaml in current directory
                        2. config/vrcsessions.yaml
                        3. ~/.vrcsessions/config.yaml

        Returns:
            Configuration dictionary (empty when no file is found)

        Raises:
            ConfigError: If an explicit config file is missing or unreadable
        """
        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            try:
                return cls._read(path)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Failed to load config from {path}: {e}") from e

        for path in cls.search_paths():
            if path.exists():
                try:
                    return cls._read(path)
                except (OSError, yaml.YAMLError, ConfigError) as e:
                    logger.error(f"Failed to load config from {path}: {e}")

        logger.debug("No configuration file found, using defaults")
        return {}

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
        if not isinstance(config, dict):
            raise ConfigError(f"Top level of {path} must be a mapping")
        logger.info(f"Loaded configuration from {path}")
        return config

    @staticmethod
    def apply_config(
        config: Dict[str, Any],
        settings: Optional[Settings] = None,
        registry: PatternRegistry = DEFAULT_REGISTRY,
    ) -> Tuple[Settings, PatternRegistry]:
        """
        Apply configuration to settings and a pattern registry.

        Nothing is modified in place; new objects are returned.

        Args:
            config: Configuration dictionary from YAML
            settings: Base settings (defaults to the environment settings)
            registry: Base pattern registry

        Returns:
            (settings, registry) with the configuration applied

        Raises:
            ConfigError: On unknown sections, keys or invalid values
        """
        settings = settings or get_settings()

        unknown = set(config) - {"settings", "patterns"}
        if unknown:
            raise ConfigError(f"Unknown config sections: {', '.join(sorted(unknown))}")

        overrides = config.get("settings") or {}
        if not isinstance(overrides, dict):
            raise ConfigError("'settings' must be a mapping")
        if overrides:
            settings = settings.with_overrides(overrides)
            logger.debug(f"Applied settings overrides: {sorted(overrides)}")

        patterns = config.get("patterns") or {}
        if not isinstance(patterns, dict):
            raise ConfigError("'patterns' must be a mapping")
        if patterns:
            registry = PatternRegistry.from_mapping(patterns, base=registry)
            logger.debug(f"Applied pattern overrides: {sorted(patterns)}")

        settings.validate()
        return settings, registry


def load_and_apply_config(config_path: Optional[str] = None) -> Tuple[Settings, PatternRegistry]:
    """
    Load and apply configuration in one step.

    Args:
        config_path: Optional path to a config file

    Returns:
        (settings, registry)
    """
    loader = ConfigLoader()
    config = loader.load_config(config_path)
    return loader.apply_config(config)
