"""
Stable installation identity kept in the main preference store.
"""

from __future__ import annotations

import logging
import uuid

from prefvault.store.preferences import PreferenceStore

logger = logging.getLogger(__name__)

IDENTITY_KEY = "settings_uuid"


class IdentityManager:
    """Owns the random identifier used to tag restore events."""

    def __init__(self, store: PreferenceStore, key: str = IDENTITY_KEY) -> None:
        self._store = store
        self._key = key

    def get_or_create(self) -> str:
        """
        Return the persisted identity, generating and storing one if absent.

        Returns:
            The identity string.
        """
        identity = self._store.get_string(self._key)
        if identity is None:
            identity = str(uuid.uuid4())
            if not self._store.edit().put_string(self._key, identity).commit():
                logger.warning("Could not persist new settings identity")
            else:
                logger.debug(f"Created settings identity {identity}")
        return identity

    def reset(self, identity: str | None = None) -> None:
        """Overwrite the identity. None clears it so the next read regenerates."""
        self._store.edit().put_string(self._key, identity).commit()
