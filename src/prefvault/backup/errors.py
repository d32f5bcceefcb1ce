"""
Failure kinds raised by backup and restore steps.

Steps raise these; the engine boundary catches SettingsBackupError and any
stray OSError, reports it to the user and returns False. None of them escape
the engines.
"""

from __future__ import annotations


class SettingsBackupError(Exception):
    """Base class for backup and restore failures."""

    pass


class PermissionDeniedError(SettingsBackupError):
    """Storage read/write access is not granted."""

    pass


class DirectoryCreateError(SettingsBackupError):
    """A backup or restore target directory could not be created."""

    pass


class CopyFailedError(SettingsBackupError):
    """A single file copy failed."""

    def __init__(self, src: object, dst: object) -> None:
        super().__init__(f"Failed to copy {src} -> {dst}")
        self.src = src
        self.dst = dst


class SourceMissingError(SettingsBackupError):
    """The primary preference file is missing (nothing to back up or restore)."""

    pass


class FlagWriteError(SettingsBackupError):
    """The backup flag could not be removed or recreated."""

    pass
