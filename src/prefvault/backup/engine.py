"""
Backup engine: snapshots preference and resource files to the backup root.

The backup flag is deleted before anything is written and recreated only
after every copy succeeded, so a partially written backup never looks valid.
Any failure ends the run; files copied before it stay on disk but the backup
remains invalid until the next successful run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from prefvault.backup.errors import (
    CopyFailedError,
    DirectoryCreateError,
    FlagWriteError,
    PermissionDeniedError,
    SettingsBackupError,
    SourceMissingError,
)
from prefvault.backup.layout import BackupLayout
from prefvault.fsops import copy_file, touch
from prefvault.notify import MessageKind, UserNotifier
from prefvault.paths import APP_PICKER_DIR, AppPaths

logger = logging.getLogger(__name__)

Copier = Callable[[Path, Path], bool]


class StorageCheck(Protocol):
    def has_storage_read_write(self) -> bool: ...


class FileTransferEngine:
    """Shared plumbing for the backup and restore engines."""

    def __init__(
        self,
        layout: BackupLayout,
        paths: AppPaths,
        preferences_dir: Callable[[], Path],
        storage_access: StorageCheck,
        notifier: UserNotifier,
        copier: Copier = copy_file,
    ) -> None:
        self.layout = layout
        self.paths = paths
        self._preferences_dir = preferences_dir
        self._storage_access = storage_access
        self._notifier = notifier
        self._copier = copier

    def _check_permission(self) -> None:
        if not self._storage_access.has_storage_read_write():
            raise PermissionDeniedError("Storage read/write access is not granted")

    def _copy(self, src: Path, dst: Path) -> None:
        if not self._copier(src, dst):
            raise CopyFailedError(src, dst)

    def _list_files(self, directory: Path) -> list[Path]:
        """Plain files directly inside ``directory``; empty if it does not exist."""
        if not directory.is_dir():
            return []
        try:
            return sorted(entry for entry in directory.iterdir() if entry.is_file())
        except OSError as e:
            raise CopyFailedError(directory, "<listing>") from e


class BackupEngine(FileTransferEngine):
    """Copies the artifact manifest and private files into the backup root."""

    def backup(self) -> bool:
        """
        Run a full backup.

        Returns:
            True if every step succeeded and the backup flag was recreated.
        """
        try:
            self._run()
        except (SettingsBackupError, OSError) as e:
            kind = self._failure_message(e)
            logger.error(f"Backup failed: {e}")
            self._notifier.show(kind)
            return False

        logger.info(f"Settings backed up to {self.layout.root}")
        self._notifier.show(MessageKind.BACKUP_SUCCESS)
        return True

    @staticmethod
    def _failure_message(error: Exception) -> MessageKind:
        if isinstance(error, PermissionDeniedError):
            return MessageKind.PERMISSION_DENIED
        if isinstance(error, SourceMissingError):
            return MessageKind.BACKUP_NO_PREFS
        return MessageKind.BACKUP_FAILED

    def _run(self) -> None:
        self._check_permission()
        self._create_directories()
        self._create_no_media()
        self._invalidate()

        preferences_dir = self._preferences_dir()
        self._copy_artifacts(preferences_dir)

        app_picker = self._list_files(preferences_dir / APP_PICKER_DIR)
        for src in app_picker:
            self._copy(src, self.layout.app_picker_dir / src.name)

        for src in self._list_files(self.paths.files_dir):
            self._copy(src, self.layout.files_dir / src.name)

        self._write_flag()

    def _create_directories(self) -> None:
        # app_picker is the deepest directory; this creates the whole tree
        try:
            self.layout.app_picker_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreateError(f"Cannot create {self.layout.app_picker_dir}: {e}") from e

    def _create_no_media(self) -> None:
        try:
            touch(self.layout.no_media)
        except OSError as e:
            logger.debug(f"Could not create {self.layout.no_media}: {e}")

    def _invalidate(self) -> None:
        try:
            self.layout.flag.unlink(missing_ok=True)
        except OSError as e:
            raise FlagWriteError(f"Cannot remove backup flag: {e}") from e

    def _copy_artifacts(self, preferences_dir: Path) -> None:
        for artifact in self.layout.manifest:
            src = preferences_dir / artifact.name
            if src.exists():
                self._copy(src, self.layout.artifact_path(artifact))
            elif artifact.required:
                raise SourceMissingError(f"No preferences to back up: {src} does not exist")

    def _write_flag(self) -> None:
        try:
            touch(self.layout.flag)
        except OSError as e:
            raise FlagWriteError(f"Cannot create backup flag: {e}") from e
