"""
User-facing outcome messages for backup and restore.

The engines report each outcome exactly once through a UserNotifier. The CLI
prints them; library users can plug in any object with a show() method.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class MessageKind(Enum):
    """Outcome messages shown to the user."""

    PERMISSION_DENIED = "permission_storage_denied"
    BACKUP_FAILED = "settings_backup_failed"
    BACKUP_NO_PREFS = "settings_backup_no_prefs"
    BACKUP_SUCCESS = "settings_backup_success"
    RESTORE_NO_BACKUP = "settings_restore_no_backup"
    RESTORE_FAILED = "settings_restore_failed"
    RESTORE_SUCCESS = "settings_restore_success"

    @property
    def text(self) -> str:
        return MESSAGES[self]

    @property
    def is_error(self) -> bool:
        return self not in (MessageKind.BACKUP_SUCCESS, MessageKind.RESTORE_SUCCESS)


MESSAGES: dict[MessageKind, str] = {
    MessageKind.PERMISSION_DENIED: "Storage permission denied",
    MessageKind.BACKUP_FAILED: "Settings backup failed",
    MessageKind.BACKUP_NO_PREFS: "No preferences to back up",
    MessageKind.BACKUP_SUCCESS: "Settings backed up successfully",
    MessageKind.RESTORE_NO_BACKUP: "No settings backup found",
    MessageKind.RESTORE_FAILED: "Settings restore failed",
    MessageKind.RESTORE_SUCCESS: "Settings restored successfully",
}


class UserNotifier(Protocol):
    """Anything that can present an outcome message to the user."""

    def show(self, kind: MessageKind) -> None: ...


class LoggingNotifier:
    """Reports outcome messages through logging."""

    def show(self, kind: MessageKind) -> None:
        level = logging.WARNING if kind.is_error else logging.INFO
        logger.log(level, kind.text)
