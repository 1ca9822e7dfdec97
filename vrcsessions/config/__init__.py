"""
Configuration module for the VRChat session parser.

Provides environment-driven settings and YAML overrides for settings and
log patterns.
"""

from .settings import (
    Settings,
    default_log_dir,
    default_photo_dir,
    get_settings,
    reload_settings,
    settings,
)
from .loader import ConfigLoader, load_and_apply_config

__all__ = [
    "Settings",
    "default_log_dir",
    "default_photo_dir",
    "get_settings",
    "reload_settings",
    "settings",
    "ConfigLoader",
    "load_and_apply_config",
]
