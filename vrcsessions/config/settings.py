"""
Configuration settings for the VRChat session parser.

Settings come from environment variables and may be overridden by a YAML
file (see loader.py).
"""

import logging
import os
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from vrcsessions.errors import ConfigError
from vrcsessions.models.values import Timestamp


LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def default_log_dir() -> Path:
    """Where VRChat writes output_log files on this platform."""
    if sys.platform == "win32":
        return Path.home() / "AppData" / "LocalLow" / "VRChat" / "VRChat"
    return Path.home() / ".local" / "share" / "VRChat"


def default_photo_dir() -> Path:
    """Where VRChat saves screenshots by default."""
    return Path.home() / "Pictures" / "VRChat"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Application settings."""

    log_dir: Path
    photo_dir: Path
    log_level: str = "info"
    newest_first: bool = True
    use_prefilter: bool = True
    since: Optional[str] = None  # only read events at or after this timestamp

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            log_dir=Path(os.getenv("VRCSESSIONS_LOG_DIR") or default_log_dir()),
            photo_dir=Path(os.getenv("VRCSESSIONS_PHOTO_DIR") or default_photo_dir()),
            log_level=os.getenv("VRCSESSIONS_LOG_LEVEL", "info").lower(),
            newest_first=_env_bool("VRCSESSIONS_NEWEST_FIRST", True),
            use_prefilter=_env_bool("VRCSESSIONS_PREFILTER", True),
            since=os.getenv("VRCSESSIONS_SINCE") or None,
        )

    def with_overrides(self, overrides: Mapping[str, Any]) -> "Settings":
        """
        Return a copy with values from a configuration mapping applied.

        Args:
            overrides: Keys matching Settings fields

        Raises:
            ConfigError: On unknown keys
        """
        known = set(self.__dataclass_fields__)
        changes = {}
        for key, value in overrides.items():
            if key not in known:
                raise ConfigError(f"Unknown setting: {key!r}")
            if key in ("log_dir", "photo_dir") and value is not None:
                value = Path(os.path.expanduser(str(value)))
            elif key == "log_level" and isinstance(value, str):
                value = value.lower()
            changes[key] = value
        return replace(self, **changes)

    def validate(self):
        """Validate configuration settings."""
        errors = []

        if self.log_level not in LOG_LEVELS:
            errors.append(f"Invalid log level: {self.log_level!r}")

        if not isinstance(self.newest_first, bool):
            errors.append(f"newest_first must be a boolean, got {self.newest_first!r}")

        if not isinstance(self.use_prefilter, bool):
            errors.append(f"use_prefilter must be a boolean, got {self.use_prefilter!r}")

        if self.since is not None:
            try:
                Timestamp.parse(str(self.since))
            except ValueError as e:
                errors.append(f"Invalid since timestamp: {e}")

        if errors:
            raise ConfigError(f"Configuration validation failed: {'; '.join(errors)}")

    def log_configuration(self):
        """Log current configuration."""
        logger = logging.getLogger(__name__)

        logger.debug("=== vrcsessions configuration ===")
        logger.debug(f"Log directory: {self.log_dir}")
        logger.debug(f"Photo directory: {self.photo_dir}")
        logger.debug(f"Log level: {self.log_level}")
        logger.debug(f"Newest first: {self.newest_first}")
        logger.debug(f"Prefilter: {self.use_prefilter}")
        if self.since:
            logger.debug(f"Since: {self.since}")


# Global settings instance
settings = Settings.from_env()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment variables."""
    global settings
    settings = Settings.from_env()
    return settings
