"""
Configuration settings management for prefvault.

This module handles loading, validating, and saving configuration settings
from YAML files with support for environment variable overrides.

Configuration is loaded from ~/.prefvault/config.yaml by default, with the
path overridable via the PREFVAULT_CONFIG environment variable.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".prefvault"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

DEFAULT_PACKAGE_NAME = "com.ceco.oreo.gravitybox"
DEFAULT_BACKUP_ROOT = Path.home() / "GravityBox" / "backup"

# Primary preference file names of earlier release lines, newest first
LEGACY_PREFERENCE_FILES = [
    "com.ceco.nougat.gravitybox_preferences.xml",
    "com.ceco.marshmallow.gravitybox_preferences.xml",
    "com.ceco.lollipop.gravitybox_preferences.xml",
]


@dataclass
class BackupConfig:
    """Backup location settings."""

    root: str = str(DEFAULT_BACKUP_ROOT)


@dataclass
class RestoreConfig:
    """Restore behavior settings."""

    legacy_preference_files: list[str] = field(
        default_factory=lambda: list(LEGACY_PREFERENCE_FILES)
    )
    # Historical behavior: a failed app picker copy still reports success
    app_picker_failure_is_success: bool = True


@dataclass
class Settings:
    """
    Complete prefvault configuration settings.

    Settings are loaded from a YAML configuration file and can be overridden
    by environment variables prefixed with PREFVAULT_.

    Attributes:
        package_name: Application package name; names the primary preference file.
        data_dir: The application's private data root (holds files/ and cache/).
        preferences_dir: Directory of the preference stores. Empty means
            <data_dir>/shared_prefs.
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR).
        world_readable: Whether preference files are made readable by others.
        backup: Backup location settings.
        restore: Restore behavior settings.
    """

    package_name: str = DEFAULT_PACKAGE_NAME
    data_dir: str = str(DEFAULT_CONFIG_DIR / "app")
    preferences_dir: str = ""
    log_level: str = "INFO"
    world_readable: bool = True

    backup: BackupConfig = field(default_factory=BackupConfig)
    restore: RestoreConfig = field(default_factory=RestoreConfig)

    @property
    def primary_preferences_file(self) -> str:
        """File name of the main preference store."""
        return f"{self.package_name}_preferences.xml"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


def get_config_path() -> Path:
    """
    Get the configuration file path.

    Returns the path from PREFVAULT_CONFIG environment variable if set,
    otherwise returns the default path (~/.prefvault/config.yaml).

    Returns:
        Path to the configuration file.
    """
    env_path = os.environ.get("PREFVAULT_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def load_config(config_path: Path | None = None) -> Settings:
    """
    Load configuration from YAML file.

    Reads configuration from the specified path (or default if not provided),
    applies environment variable overrides, and validates the configuration.

    Args:
        config_path: Optional path to configuration file. If not provided,
                    uses PREFVAULT_CONFIG environment variable or default path.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If the configuration file cannot be read or
                          contains invalid settings.
    """
    if config_path is None:
        config_path = get_config_path()

    settings = Settings()

    if config_path.exists():
        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError("Config file must contain a mapping")

        settings = _apply_config_data(settings, config_data)

    settings = _apply_environment_overrides(settings)

    _validate_config(settings)

    return settings


def save_config(settings: Settings, config_path: Path | None = None) -> None:
    """
    Save configuration to YAML file.

    Args:
        settings: Settings instance to save.
        config_path: Optional path to configuration file.

    Raises:
        ConfigurationError: If the configuration cannot be written.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    config_data = _settings_to_dict(settings)

    try:
        with open(config_path, "w") as f:
            yaml.safe_dump(config_data, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigurationError(f"Cannot write config file: {e}") from e


def _expand(value: Any) -> str:
    """Expand ~ in a configured path."""
    return os.path.expanduser(str(value)) if value else ""


def _apply_config_data(settings: Settings, data: dict[str, Any]) -> Settings:
    """Apply configuration data from parsed YAML to settings."""
    main = data.get("prefvault", {}) or {}

    if "package_name" in main:
        settings.package_name = str(main["package_name"])
    if "data_dir" in main:
        settings.data_dir = _expand(main["data_dir"])
    if "preferences_dir" in main:
        settings.preferences_dir = _expand(main["preferences_dir"])
    if "log_level" in main:
        settings.log_level = str(main["log_level"]).upper()
    if "world_readable" in main:
        settings.world_readable = bool(main["world_readable"])

    backup = data.get("backup", {}) or {}
    if "root" in backup:
        settings.backup.root = _expand(backup["root"])

    restore = data.get("restore", {}) or {}
    if "legacy_preference_files" in restore:
        settings.restore.legacy_preference_files = [
            str(name) for name in restore["legacy_preference_files"] or []
        ]
    if "app_picker_failure_is_success" in restore:
        settings.restore.app_picker_failure_is_success = bool(
            restore["app_picker_failure_is_success"]
        )

    return settings


def _apply_environment_overrides(settings: Settings) -> Settings:
    """Apply environment variable overrides to settings."""
    env_map: dict[str, tuple[str, Callable[[str], Any]]] = {
        "PREFVAULT_PACKAGE_NAME": ("package_name", str),
        "PREFVAULT_DATA_DIR": ("data_dir", _expand),
        "PREFVAULT_PREFERENCES_DIR": ("preferences_dir", _expand),
        "PREFVAULT_LOG_LEVEL": ("log_level", lambda x: x.upper()),
        "PREFVAULT_BACKUP_ROOT": ("backup.root", _expand),
    }

    for env_var, (attr_path, converter) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested_attr(settings, attr_path, converter(value))

    return settings


def _set_nested_attr(obj: Any, path: str, value: Any) -> None:
    """Set a nested attribute on an object using dot notation."""
    parts = path.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _validate_config(settings: Settings) -> None:
    """
    Validate configuration settings.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if settings.log_level not in valid_log_levels:
        raise ConfigurationError(
            f"Invalid log_level: {settings.log_level}. "
            f"Must be one of: {', '.join(sorted(valid_log_levels))}"
        )

    if not settings.package_name.strip():
        raise ConfigurationError("package_name must not be empty")

    if not settings.data_dir.strip():
        raise ConfigurationError("data_dir must not be empty")

    if not settings.backup.root.strip():
        raise ConfigurationError("backup.root must not be empty")

    for name in settings.restore.legacy_preference_files:
        if not name.endswith(".xml") or "/" in name:
            raise ConfigurationError(
                f"Invalid legacy preference file name: {name!r}"
            )


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert Settings instance to dictionary for YAML serialization."""
    return {
        "prefvault": {
            "package_name": settings.package_name,
            "data_dir": settings.data_dir,
            "preferences_dir": settings.preferences_dir,
            "log_level": settings.log_level,
            "world_readable": settings.world_readable,
        },
        "backup": {
            "root": settings.backup.root,
        },
        "restore": {
            "legacy_preference_files": list(settings.restore.legacy_preference_files),
            "app_picker_failure_is_success": settings.restore.app_picker_failure_is_success,
        },
    }
