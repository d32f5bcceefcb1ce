"""
Settings manager: the composition root for backup, restore and change fan-out.

One SettingsManager is built from Settings by the application and handed to
whatever needs it. It owns the preference stores, the preference directory
resolver, the identity, both engines, the permission fixer and the change
notifier.

Backup and restore are synchronous and unsynchronized; callers must not run
them concurrently with each other or with themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from prefvault.backup.engine import BackupEngine, Copier, StorageCheck
from prefvault.backup.layout import BackupLayout
from prefvault.backup.restore import RestoreEngine
from prefvault.config.settings import Settings
from prefvault.fsops import copy_file
from prefvault.identity import IdentityManager
from prefvault.notifier import ChangeNotifier, FileObserverListener
from prefvault.notify import LoggingNotifier, UserNotifier
from prefvault.paths import AppPaths
from prefvault.permissions import PermissionFixer, StorageAccess
from prefvault.store.preferences import PreferenceStore
from prefvault.store.resolver import PreferenceDirectoryResolver

logger = logging.getLogger(__name__)

LED_CONTROL_STORE = "ledcontrol"
QUIET_HOURS_STORE = "quiet_hours"
TUNER_STORE = "tuner"


class SettingsManager:
    """
    Backup, restore and change notification for the application's settings.

    Usage:
        manager = SettingsManager(load_config())
        if manager.backup():
            ...
        manager.start_watching()
    """

    def __init__(
        self,
        settings: Settings,
        notifier: UserNotifier | None = None,
        storage_access: StorageCheck | None = None,
        copier: Copier = copy_file,
        observer_factory: Callable[[], Any] | None = None,
    ) -> None:
        """
        Initialize the manager and open the preference stores.

        Args:
            settings: Loaded configuration.
            notifier: Receives user-facing outcome messages (default: logging).
            storage_access: Storage permission check (default: filesystem access
                check on the backup root).
            copier: Single-file copy primitive.
            observer_factory: watchdog observer factory used by start_watching().
        """
        self.settings = settings
        self.paths = AppPaths.from_settings(settings)
        self.layout = BackupLayout.from_settings(settings)
        notifier = notifier or LoggingNotifier()
        storage_access = storage_access or StorageAccess(self.layout.root)

        self._resolver = PreferenceDirectoryResolver(
            self._open_configured_store, self.paths.fallback_preferences_dir
        )

        preferences_dir = self._resolver.resolve()
        self._main_prefs = self._open_store(f"{settings.package_name}_preferences")
        self._led_control_prefs = self._open_store(LED_CONTROL_STORE)
        self._quiet_hours_prefs = self._open_store(QUIET_HOURS_STORE)
        self._tuner_prefs = self._open_store(TUNER_STORE)
        logger.debug(f"Opened preference stores in {preferences_dir}")

        self._identity = IdentityManager(self._main_prefs)
        self._backup_engine = BackupEngine(
            self.layout,
            self.paths,
            self._resolver.resolve,
            storage_access,
            notifier,
            copier=copier,
        )
        self._restore_engine = RestoreEngine(
            self.layout,
            self.paths,
            self._resolver.resolve,
            storage_access,
            notifier,
            identity=self._identity.get_or_create,
            copier=copier,
            app_picker_failure_is_success=settings.restore.app_picker_failure_is_success,
        )
        self._permission_fixer = PermissionFixer(self.paths, self._resolver.resolve)

        self._change_notifier = ChangeNotifier(self._resolver.resolve, observer_factory)
        for store in (
            self._main_prefs,
            self._led_control_prefs,
            self._quiet_hours_prefs,
            self._tuner_prefs,
        ):
            self._change_notifier.register_listener(store)

    def _open_configured_store(self, name: str) -> PreferenceStore:
        return PreferenceStore.open(
            self.paths.preferences_dir, name, world_readable=self.settings.world_readable
        )

    def _open_store(self, name: str) -> PreferenceStore:
        return PreferenceStore.open(
            self._resolver.resolve(), name, world_readable=self.settings.world_readable
        )

    @property
    def preference_dir(self) -> Path:
        return self._resolver.resolve()

    @property
    def main_preferences(self) -> PreferenceStore:
        return self._main_prefs

    @property
    def led_control_preferences(self) -> PreferenceStore:
        return self._led_control_prefs

    @property
    def quiet_hours_preferences(self) -> PreferenceStore:
        return self._quiet_hours_prefs

    @property
    def tuner_preferences(self) -> PreferenceStore:
        return self._tuner_prefs

    @property
    def change_notifier(self) -> ChangeNotifier:
        return self._change_notifier

    # Backup and restore

    def backup(self) -> bool:
        """Back up settings. See BackupEngine.backup()."""
        return self._backup_engine.backup()

    def restore(self) -> bool:
        """
        Restore settings. See RestoreEngine.restore().

        The stores are reloaded even when the restore fails, since live
        preference files may already have been replaced.
        """
        try:
            return self._restore_engine.restore()
        finally:
            self._reload_stores()

    def is_backup_available(self) -> bool:
        return self.layout.is_backup_available()

    def is_backup_obsolete(self) -> bool:
        """True when only a backup from an older release line exists."""
        return self.layout.is_backup_obsolete()

    def _reload_stores(self) -> None:
        for store in (
            self._main_prefs,
            self._led_control_prefs,
            self._quiet_hours_prefs,
            self._tuner_prefs,
        ):
            store.on_file_updated(store.backing_file_path().name)

    # Identity

    def get_or_create_identity(self) -> str:
        return self._identity.get_or_create()

    def reset_identity(self, identity: str | None = None) -> None:
        self._identity.reset(identity)

    # Permissions and change notification

    def fix_permissions_async(self) -> None:
        self._permission_fixer.fix_permissions_async()

    def fix_permissions(self) -> None:
        self._permission_fixer.fix_permissions()

    def register_listener(self, listener: FileObserverListener) -> None:
        self._change_notifier.register_listener(listener)

    def start_watching(self) -> None:
        self._change_notifier.start()

    def stop_watching(self) -> None:
        self._change_notifier.stop()
