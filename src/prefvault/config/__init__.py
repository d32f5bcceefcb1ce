"""
Configuration management for prefvault.

This module handles loading, validating, and saving configuration settings.
"""

from prefvault.config.settings import (
    DEFAULT_CONFIG_DIR,
    LEGACY_PREFERENCE_FILES,
    BackupConfig,
    ConfigurationError,
    RestoreConfig,
    Settings,
    load_config,
    save_config,
)

__all__ = [
    "Settings",
    "BackupConfig",
    "RestoreConfig",
    "load_config",
    "save_config",
    "ConfigurationError",
    "DEFAULT_CONFIG_DIR",
    "LEGACY_PREFERENCE_FILES",
]
