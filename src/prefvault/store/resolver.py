"""
Location of the directory that holds every preference store file.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from prefvault.store.preferences import PreferenceStoreError

logger = logging.getLogger(__name__)

# Name of the throwaway store used to discover the directory
PROBE_STORE_NAME = "dummy"


class PreferenceDirectoryResolver:
    """
    Determines the preference directory once and caches the answer.

    The primary strategy opens a throwaway store through ``store_factory``,
    forces it to persist, and takes the parent directory of its backing file.
    If the store cannot report its backing file, or persisting it fails, the
    resolver falls back to ``fallback_dir``.
    """

    def __init__(self, store_factory: Callable[[str], Any], fallback_dir: Path) -> None:
        """
        Args:
            store_factory: Callable returning a store for a given name. The
                store should provide edit()/commit() and backing_file_path().
            fallback_dir: Well-known directory used when introspection fails.
        """
        self._store_factory = store_factory
        self._fallback_dir = Path(fallback_dir)
        self._resolved: Path | None = None

    def resolve(self) -> Path:
        """Return the preference directory, resolving it on first use."""
        if self._resolved is None:
            try:
                self._resolved = self._introspect()
                logger.debug(f"Preference folder: {self._resolved}")
            except (AttributeError, NotImplementedError, OSError, PreferenceStoreError) as e:
                logger.error(
                    f"Could not determine preference folder path, using default: {e}"
                )
                self._resolved = self._fallback_dir.absolute()
        return self._resolved

    def _introspect(self) -> Path:
        store = self._store_factory(PROBE_STORE_NAME)
        store.edit().put_boolean(PROBE_STORE_NAME, False).commit()
        return Path(store.backing_file_path()).absolute().parent
