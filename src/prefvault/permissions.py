"""
Storage permission check and permission normalization for the private tree.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from prefvault.fsops import make_world_traversable
from prefvault.paths import APP_PICKER_DIR, AppPaths

logger = logging.getLogger(__name__)


class StorageAccess:
    """Capability check for read/write access to the backup location."""

    def __init__(self, backup_root: Path) -> None:
        self._backup_root = Path(backup_root)

    def has_storage_read_write(self) -> bool:
        """
        Check whether the backup root can be read and written.

        The root may not exist yet, so the nearest existing ancestor is
        checked instead.
        """
        path = self._backup_root.absolute()
        while not path.exists():
            if path.parent == path:
                return False
            path = path.parent
        return os.access(path, os.R_OK | os.W_OK | os.X_OK)


class PermissionFixer:
    """
    Grants read and execute access across the application's private storage.

    fix_permissions_async() is fire-and-forget: the pass runs on a background
    thread and callers cannot observe when it completes or whether it worked.
    """

    def __init__(self, paths: AppPaths, preferences_dir: Callable[[], Path]) -> None:
        """
        Args:
            paths: Private storage tree.
            preferences_dir: Returns the resolved preference directory.
        """
        self._paths = paths
        self._preferences_dir = preferences_dir

    def fix_permissions_async(self) -> None:
        """Schedule a normalization pass in the background."""
        thread = threading.Thread(
            target=self.fix_permissions,
            name="prefvault-permissions",
            daemon=False,
        )
        thread.start()

    def fix_permissions(self) -> None:
        """Run the normalization pass on the calling thread."""
        self._fix(self._paths.data_dir)
        self._fix(self._paths.cache_dir)
        self._fix(self._paths.files_dir, with_children=True)
        self._fix(self._preferences_dir() / APP_PICKER_DIR, with_children=True)

    def _fix(self, directory: Path, with_children: bool = False) -> None:
        if not directory.exists():
            return
        self._grant(directory)
        if not with_children:
            return
        try:
            entries = list(directory.iterdir())
        except OSError as e:
            logger.warning(f"Cannot list {directory}: {e}")
            return
        for entry in entries:
            self._grant(entry)

    def _grant(self, path: Path) -> None:
        try:
            make_world_traversable(path)
        except OSError as e:
            logger.warning(f"Cannot fix permissions on {path}: {e}")
