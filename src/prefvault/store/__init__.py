"""
Preference storage for prefvault.

Provides the world-readable key/value store backing each preference file and
the resolver that locates the directory holding those files.

Usage:
    from prefvault.store import PreferenceStore

    prefs = PreferenceStore.open(prefs_dir, "tuner")
    prefs.edit().put_boolean("enabled", True).commit()
"""

from prefvault.store.preferences import (
    Editor,
    PreferenceStore,
    PreferenceStoreError,
    parse_preferences,
    serialize_preferences,
)
from prefvault.store.resolver import PROBE_STORE_NAME, PreferenceDirectoryResolver

__all__ = [
    "PreferenceStore",
    "Editor",
    "PreferenceStoreError",
    "parse_preferences",
    "serialize_preferences",
    "PreferenceDirectoryResolver",
    "PROBE_STORE_NAME",
]
