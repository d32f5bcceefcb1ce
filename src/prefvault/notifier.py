"""
Fan-out of preference directory change events to registered listeners.

A single watchdog observer watches the preference directory (non-recursive)
and translates raw events into two notifications:

    modified (attribute or content change)   -> on_file_attributes_changed(path)
    closed after write, moved into place     -> on_file_updated(path)

``path`` is relative to the watched directory, or None when the event concerns
the directory itself. Listeners are called synchronously on the observer
thread, in registration order. A listener that raises is logged and skipped;
delivery continues with the next listener.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class FileObserverListener(Protocol):
    """Receiver of preference directory change notifications."""

    def on_file_updated(self, path: str | None) -> None: ...

    def on_file_attributes_changed(self, path: str | None) -> None: ...


class ChangeNotifier(FileSystemEventHandler):
    """
    Watches the preference directory and dispatches events to listeners.

    Listeners are held for the notifier's lifetime; there is no removal.
    """

    def __init__(
        self,
        preferences_dir: Callable[[], Path],
        observer_factory: Callable[[], Any] | None = None,
    ) -> None:
        """
        Args:
            preferences_dir: Returns the resolved preference directory.
            observer_factory: Creates the watchdog observer started by start().
        """
        super().__init__()
        self._preferences_dir = preferences_dir
        self._observer_factory = observer_factory or Observer
        self._observer: Any = None
        self._watched: Path | None = None
        self._listeners: list[FileObserverListener] = []

    @property
    def listeners(self) -> tuple[FileObserverListener, ...]:
        return tuple(self._listeners)

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def register_listener(self, listener: FileObserverListener) -> None:
        self._listeners.append(listener)

    def start(self) -> None:
        """Start watching the preference directory."""
        if self._observer is not None:
            return
        self._watched = self._preferences_dir()
        self._watched.mkdir(parents=True, exist_ok=True)
        observer = self._observer_factory()
        observer.schedule(self, str(self._watched), recursive=False)
        observer.start()
        self._observer = observer
        logger.info(f"Watching preference folder {self._watched}")

    def stop(self) -> None:
        """Stop watching and wait for the observer thread to exit."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None

    def _relative(self, raw_path: str | bytes) -> str | None:
        path = os.fsdecode(raw_path)
        base = self._watched if self._watched is not None else self._preferences_dir()
        try:
            relative = Path(path).relative_to(base)
        except ValueError:
            return path
        return None if relative == Path(".") else str(relative)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._dispatch("on_file_attributes_changed", self._relative(event.src_path))

    def on_closed(self, event: FileSystemEvent) -> None:
        self._dispatch("on_file_updated", self._relative(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        self._dispatch("on_file_updated", self._relative(event.dest_path))

    def _dispatch(self, callback: str, path: str | None) -> None:
        for listener in tuple(self._listeners):
            try:
                getattr(listener, callback)(path)
            except Exception:
                logger.exception(f"Listener {listener!r} failed handling {callback}({path!r})")
