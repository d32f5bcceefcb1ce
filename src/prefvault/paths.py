"""
Live (on-device) locations of the application's private storage.

Storage Structure:
    <data_dir>/
        shared_prefs/           # default preference directory
            <package>_preferences.xml
            app_picker/         # user-selected item cache
        files/                  # private files, including restore markers
        cache/
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from prefvault.config.settings import Settings

APP_PICKER_DIR = "app_picker"
FILES_DIR = "files"
CACHE_DIR = "cache"
SHARED_PREFS_DIR = "shared_prefs"


@dataclass(frozen=True)
class AppPaths:
    """Private storage tree of the application."""

    data_dir: Path
    preferences_dir: Path

    @classmethod
    def from_settings(cls, settings: Settings) -> AppPaths:
        data_dir = Path(settings.data_dir)
        if settings.preferences_dir:
            preferences_dir = Path(settings.preferences_dir)
        else:
            preferences_dir = data_dir / SHARED_PREFS_DIR
        return cls(data_dir=data_dir, preferences_dir=preferences_dir)

    @property
    def files_dir(self) -> Path:
        return self.data_dir / FILES_DIR

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / CACHE_DIR

    @property
    def fallback_preferences_dir(self) -> Path:
        """Well-known preference directory used when it cannot be discovered."""
        return self.data_dir / SHARED_PREFS_DIR
