"""
Restore engine: copies a valid backup back into the live preference tree.

Restore never touches the backup flag. Its precondition is that the flag
exists; without it nothing under the preference directory is written.

The primary preference file may have been backed up by an older release line
under a different name. Restore walks the artifact's version chain and writes
whichever name it finds to the current name, migrating it forward.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from prefvault.backup.engine import Copier, FileTransferEngine, StorageCheck
from prefvault.backup.errors import (
    DirectoryCreateError,
    PermissionDeniedError,
    SettingsBackupError,
    SourceMissingError,
)
from prefvault.backup.layout import Artifact, BackupLayout
from prefvault.fsops import copy_file, make_world_readable, make_world_traversable, touch
from prefvault.notify import MessageKind, UserNotifier
from prefvault.paths import APP_PICKER_DIR, AppPaths

logger = logging.getLogger(__name__)

# Prefix of the marker file that flags post-restore fix-ups for the next start
RESTORE_MARKER_PREFIX = "uuid_"


class NoBackupError(SourceMissingError):
    """The backup flag is absent."""

    pass


class RestoreEngine(FileTransferEngine):
    """Copies backed-up artifacts and files into the live locations."""

    def __init__(
        self,
        layout: BackupLayout,
        paths: AppPaths,
        preferences_dir: Callable[[], Path],
        storage_access: StorageCheck,
        notifier: UserNotifier,
        identity: Callable[[], str],
        copier: Copier = copy_file,
        app_picker_failure_is_success: bool = True,
    ) -> None:
        """
        Args:
            layout: Backup root layout and artifact manifest.
            paths: Private storage tree.
            preferences_dir: Returns the resolved preference directory.
            storage_access: Storage permission check.
            notifier: Receives the outcome message.
            identity: Returns the installation identity for the restore marker.
            copier: Single-file copy primitive.
            app_picker_failure_is_success: Report success when restoring the
                app picker cache fails (historical behavior; a failure message
                is still shown).
        """
        super().__init__(layout, paths, preferences_dir, storage_access, notifier, copier)
        self._identity = identity
        self.app_picker_failure_is_success = app_picker_failure_is_success

    def restore(self) -> bool:
        """
        Restore the last valid backup.

        Returns:
            True if the restore completed.
        """
        try:
            self._check_permission()
            if not self.layout.is_backup_available():
                raise NoBackupError(f"No valid backup in {self.layout.root}")

            self._write_restore_marker()

            preferences_dir = self._preferences_dir()
            self._restore_artifacts(preferences_dir)

            try:
                self._restore_app_picker(preferences_dir / APP_PICKER_DIR)
            except (SettingsBackupError, OSError) as e:
                if not self.app_picker_failure_is_success:
                    raise
                logger.error(f"App picker restore failed: {e}")
                self._notifier.show(MessageKind.RESTORE_FAILED)
                return True

            self._restore_files()
        except (SettingsBackupError, OSError) as e:
            kind = self._failure_message(e)
            logger.error(f"Restore failed: {e}")
            self._notifier.show(kind)
            return False

        logger.info(f"Settings restored from {self.layout.root}")
        self._notifier.show(MessageKind.RESTORE_SUCCESS)
        return True

    @staticmethod
    def _failure_message(error: Exception) -> MessageKind:
        if isinstance(error, PermissionDeniedError):
            return MessageKind.PERMISSION_DENIED
        if isinstance(error, SourceMissingError):
            return MessageKind.RESTORE_NO_BACKUP
        return MessageKind.RESTORE_FAILED

    def _write_restore_marker(self) -> None:
        marker = self.paths.files_dir / f"{RESTORE_MARKER_PREFIX}{self._identity()}"
        try:
            touch(marker)
        except OSError as e:
            logger.debug(f"Could not create restore marker {marker}: {e}")

    def find_source(self, artifact: Artifact) -> Path | None:
        """
        Locate the backed-up file for ``artifact``.

        Only the required artifact falls back to its legacy names.
        """
        names = artifact.version_chain if artifact.required else (artifact.name,)
        for name in names:
            candidate = self.layout.artifact_path(artifact, name)
            if candidate.exists():
                if name != artifact.name:
                    logger.info(f"Migrating {name} to {artifact.name}")
                return candidate
        return None

    def _restore_artifacts(self, preferences_dir: Path) -> None:
        sources: list[tuple[Artifact, Path]] = []
        for artifact in self.layout.manifest:
            src = self.find_source(artifact)
            if src is not None:
                sources.append((artifact, src))
            elif artifact.required:
                raise SourceMissingError(f"No backed-up {artifact.name} in {self.layout.root}")

        for artifact, src in sources:
            dst = preferences_dir / artifact.name
            self._copy(src, dst)
            self._make_readable(dst)

    def _restore_app_picker(self, target_dir: Path) -> None:
        self._ensure_directory(target_dir)
        for src in self._list_files(self.layout.app_picker_dir):
            dst = target_dir / src.name
            self._copy(src, dst)
            self._make_readable(dst)

    def _restore_files(self) -> None:
        target_dir = self.paths.files_dir
        self._ensure_directory(target_dir)
        for src in self._list_files(self.layout.files_dir):
            dst = target_dir / src.name
            self._copy(src, dst)
            self._make_readable(dst)

    def _ensure_directory(self, directory: Path) -> None:
        if directory.is_dir():
            return
        try:
            directory.mkdir(parents=True, exist_ok=True)
            make_world_traversable(directory)
        except OSError as e:
            raise DirectoryCreateError(f"Cannot create {directory}: {e}") from e

    @staticmethod
    def _make_readable(path: Path) -> None:
        try:
            make_world_readable(path)
        except OSError as e:
            logger.warning(f"Cannot make {path} world-readable: {e}")
