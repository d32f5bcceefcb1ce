"""
Backup and restore functionality for prefvault.

This module snapshots the application's preference files and resource files
to a single backup slot and restores them on demand. Backup validity is
tracked with a flag file in the backup root.

Usage:
    from prefvault.backup import SettingsManager

    manager = SettingsManager(settings)

    # Create a backup
    ok = manager.backup()

    # Restore from backup
    if manager.is_backup_available():
        ok = manager.restore()
"""

from prefvault.backup.engine import BackupEngine
from prefvault.backup.errors import (
    CopyFailedError,
    DirectoryCreateError,
    FlagWriteError,
    PermissionDeniedError,
    SettingsBackupError,
    SourceMissingError,
)
from prefvault.backup.layout import (
    Artifact,
    ArtifactKind,
    BackupLayout,
    build_manifest,
)
from prefvault.backup.manager import SettingsManager
from prefvault.backup.restore import RESTORE_MARKER_PREFIX, RestoreEngine

__all__ = [
    "SettingsManager",
    "BackupEngine",
    "RestoreEngine",
    "BackupLayout",
    "Artifact",
    "ArtifactKind",
    "build_manifest",
    "RESTORE_MARKER_PREFIX",
    "SettingsBackupError",
    "PermissionDeniedError",
    "DirectoryCreateError",
    "CopyFailedError",
    "SourceMissingError",
    "FlagWriteError",
]
