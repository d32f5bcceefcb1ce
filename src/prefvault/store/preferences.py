"""
World-readable key/value preference store.

Each store is backed by a single XML file in the preference directory, using
the map layout of the application's preference files:

    <?xml version='1.0' encoding='utf-8' standalone='yes' ?>
    <map>
        <string name="settings_uuid">...</string>
        <boolean name="dummy" value="false" />
        <int name="pref_count" value="3" />
        <set name="pref_apps"><string>a</string></set>
    </map>

Writes go through an Editor and are applied with commit(), which replaces the
backing file atomically (temp file + rename). Stores also act as change
listeners: another process writing the file triggers a reload, and an
attribute change re-asserts world-readable mode.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from prefvault.fsops import make_world_readable

logger = logging.getLogger(__name__)

XML_HEADER = "<?xml version='1.0' encoding='utf-8' standalone='yes' ?>\n"

# Values outside this range are written as <long>
_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1


class PreferenceStoreError(Exception):
    """Raised when a preference file cannot be parsed."""

    pass


def _parse_element(child: ET.Element) -> Any:
    tag = child.tag
    value = child.get("value")
    if tag == "string":
        return child.text or ""
    if tag == "boolean":
        return value == "true"
    if tag in ("int", "long"):
        return int(value or "")
    if tag == "float":
        return float(value or "")
    if tag == "set":
        return frozenset(item.text or "" for item in child)
    if tag == "null":
        return None
    raise PreferenceStoreError(f"Unknown preference type: <{tag}>")


def _serialize_value(parent: ET.Element, key: str, value: Any) -> None:
    if isinstance(value, str):
        element = ET.SubElement(parent, "string", name=key)
        element.text = value
    elif isinstance(value, bool):
        ET.SubElement(parent, "boolean", name=key, value="true" if value else "false")
    elif isinstance(value, int):
        tag = "int" if _INT_MIN <= value <= _INT_MAX else "long"
        ET.SubElement(parent, tag, name=key, value=str(value))
    elif isinstance(value, float):
        ET.SubElement(parent, "float", name=key, value=repr(value))
    elif isinstance(value, (set, frozenset)):
        element = ET.SubElement(parent, "set", name=key)
        for item in sorted(value):
            ET.SubElement(element, "string").text = item
    else:
        raise TypeError(f"Unsupported preference value for {key!r}: {type(value).__name__}")


def parse_preferences(data: bytes) -> dict[str, Any]:
    """
    Parse the contents of a preference file.

    Args:
        data: Raw file bytes. Empty input yields an empty mapping.

    Returns:
        Mapping of preference keys to values.

    Raises:
        PreferenceStoreError: If the content is not a valid preference map.
    """
    if not data.strip():
        return {}

    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise PreferenceStoreError(f"Malformed preference file: {e}") from e

    if root.tag != "map":
        raise PreferenceStoreError(f"Expected <map> root element, got <{root.tag}>")

    values: dict[str, Any] = {}
    for child in root:
        key = child.get("name")
        if key is None:
            raise PreferenceStoreError(f"<{child.tag}> element without a name")
        try:
            value = _parse_element(child)
        except ValueError as e:
            raise PreferenceStoreError(f"Invalid value for {key!r}: {e}") from e
        if value is not None:
            values[key] = value
    return values


def serialize_preferences(values: dict[str, Any]) -> bytes:
    """Serialize a preference mapping to file contents."""
    root = ET.Element("map")
    for key in sorted(values):
        _serialize_value(root, key, values[key])
    ET.indent(root, space="    ")
    return (XML_HEADER + ET.tostring(root, encoding="unicode") + "\n").encode("utf-8")


class Editor:
    """
    Batched set of changes to a PreferenceStore.

    Changes are staged in memory and only become visible, both in memory and
    on disk, when commit() succeeds.
    """

    def __init__(self, store: PreferenceStore) -> None:
        self._store = store
        self._changes: dict[str, Any] = {}
        self._removals: set[str] = set()
        self._clear = False

    def _put(self, key: str, value: Any) -> Editor:
        if value is None:
            return self.remove(key)
        self._removals.discard(key)
        self._changes[key] = value
        return self

    def put_string(self, key: str, value: str | None) -> Editor:
        """Stage a string value. None removes the key."""
        if value is not None and not isinstance(value, str):
            raise TypeError(f"Expected str for {key!r}, got {type(value).__name__}")
        return self._put(key, value)

    def put_boolean(self, key: str, value: bool) -> Editor:
        if not isinstance(value, bool):
            raise TypeError(f"Expected bool for {key!r}, got {type(value).__name__}")
        return self._put(key, value)

    def put_int(self, key: str, value: int) -> Editor:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected int for {key!r}, got {type(value).__name__}")
        return self._put(key, value)

    def put_float(self, key: str, value: float) -> Editor:
        return self._put(key, float(value))

    def put_string_set(self, key: str, values: Iterable[str] | None) -> Editor:
        if values is None:
            return self.remove(key)
        return self._put(key, frozenset(values))

    def remove(self, key: str) -> Editor:
        self._changes.pop(key, None)
        self._removals.add(key)
        return self

    def clear(self) -> Editor:
        """Remove every existing key before staged puts are applied."""
        self._clear = True
        return self

    def commit(self) -> bool:
        """
        Apply staged changes and persist them.

        Returns:
            True if the changes were written to the backing file.
        """
        return self._store._commit(self._changes, self._removals, self._clear)


class PreferenceStore:
    """
    Named key/value store persisted to one XML file.

    Attributes:
        name: Store name (the backing file name without .xml).
        world_readable: Whether the backing file is made readable by others.
    """

    def __init__(self, path: Path, world_readable: bool = True) -> None:
        """
        Open a store, loading the backing file if it exists.

        Args:
            path: Backing file path. It does not need to exist yet.
            world_readable: Make the backing file readable by other users.

        Raises:
            PreferenceStoreError: If an existing backing file cannot be parsed.
        """
        self._path = Path(path)
        self.name = self._path.stem
        self.world_readable = world_readable
        self._lock = threading.RLock()
        self._values: dict[str, Any] = {}
        self.reload()

    @classmethod
    def open(cls, directory: Path, name: str, world_readable: bool = True) -> PreferenceStore:
        """Open the store called ``name`` inside ``directory``."""
        return cls(Path(directory) / f"{name}.xml", world_readable=world_readable)

    def __repr__(self) -> str:
        return f"PreferenceStore({str(self._path)!r})"

    def backing_file_path(self) -> Path:
        """Absolute path of the file this store persists to."""
        return self._path.absolute()

    def reload(self) -> None:
        """Re-read the backing file, discarding the in-memory view."""
        try:
            data = self._path.read_bytes()
        except (FileNotFoundError, NotADirectoryError):
            data = b""
        values = parse_preferences(data)
        with self._lock:
            self._values = values

    # Reading

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def get_string(self, key: str, default: str | None = None) -> str | None:
        value = self.get(key, default)
        return value if isinstance(value, str) or value is None else str(value)

    def get_boolean(self, key: str, default: bool = False) -> bool:
        return bool(self.get(key, default))

    def get_int(self, key: str, default: int = 0) -> int:
        return int(self.get(key, default))

    def get_float(self, key: str, default: float = 0.0) -> float:
        return float(self.get(key, default))

    def get_string_set(self, key: str, default: Iterable[str] | None = None) -> frozenset[str] | None:
        value = self.get(key)
        if value is None:
            return frozenset(default) if default is not None else None
        return frozenset(value)

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._values

    def get_all(self) -> dict[str, Any]:
        """Snapshot of every stored key and value."""
        with self._lock:
            return dict(self._values)

    # Writing

    def edit(self) -> Editor:
        return Editor(self)

    def _commit(self, changes: dict[str, Any], removals: set[str], clear: bool) -> bool:
        with self._lock:
            values = {} if clear else dict(self._values)
            for key in removals:
                values.pop(key, None)
            values.update(changes)

            try:
                self._write(serialize_preferences(values))
            except OSError as e:
                logger.error(f"Failed to commit preferences to {self._path}: {e}")
                return False

            self._values = values
            return True

    def _write(self, content: bytes) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        temp_fd, temp_path = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=str(directory),
        )
        try:
            with os.fdopen(temp_fd, "wb") as f:
                f.write(content)
            if self.world_readable:
                make_world_readable(Path(temp_path))
            os.replace(temp_path, self._path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    # Change listener callbacks

    def _is_own_file(self, path: str | None) -> bool:
        return path is not None and Path(path).name == self._path.name

    def on_file_updated(self, path: str | None) -> None:
        """Reload when the backing file was rewritten."""
        if not self._is_own_file(path):
            return
        try:
            self.reload()
            logger.debug(f"Reloaded {self.name} after external write")
        except PreferenceStoreError as e:
            logger.warning(f"Ignoring unreadable update of {self._path}: {e}")

    def on_file_attributes_changed(self, path: str | None) -> None:
        """Keep the backing file world-readable after permission changes."""
        if not self.world_readable or not self._is_own_file(path):
            return
        try:
            make_world_readable(self._path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Cannot restore read access on {self._path}: {e}")
