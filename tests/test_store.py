"""
Tests for the preference store and preference directory resolver.

Tests cover:
- XML parsing and serialization of every value type
- Editor staging and commit
- Reloading and permission handling on change notifications
- Directory resolution, fallback and caching
"""

import os
import shutil
import stat
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from prefvault.store import (
    PROBE_STORE_NAME,
    PreferenceDirectoryResolver,
    PreferenceStore,
    PreferenceStoreError,
    parse_preferences,
    serialize_preferences,
)


class TestPreferenceFormat(unittest.TestCase):
    """Tests for parse_preferences and serialize_preferences."""

    def test_parse_all_types(self):
        """Test parsing each supported element type."""
        data = b"""<?xml version='1.0' encoding='utf-8' standalone='yes' ?>
<map>
    <string name="name">GravityBox</string>
    <boolean name="enabled" value="true" />
    <int name="count" value="3" />
    <long name="big" value="9000000000" />
    <float name="ratio" value="0.5" />
    <set name="apps">
        <string>com.a</string>
        <string>com.b</string>
    </set>
    <null name="nothing" />
</map>
"""
        values = parse_preferences(data)

        self.assertEqual(values["name"], "GravityBox")
        self.assertIs(values["enabled"], True)
        self.assertEqual(values["count"], 3)
        self.assertEqual(values["big"], 9000000000)
        self.assertEqual(values["ratio"], 0.5)
        self.assertEqual(values["apps"], frozenset({"com.a", "com.b"}))
        self.assertNotIn("nothing", values)

    def test_parse_empty_string_element(self):
        """Test that an empty <string> element yields an empty string."""
        values = parse_preferences(b'<map><string name="empty" /></map>')
        self.assertEqual(values["empty"], "")

    def test_parse_empty_file(self):
        """Test that empty content is an empty map."""
        self.assertEqual(parse_preferences(b""), {})
        self.assertEqual(parse_preferences(b"  \n"), {})

    def test_parse_malformed(self):
        """Test that malformed XML raises PreferenceStoreError."""
        with self.assertRaises(PreferenceStoreError):
            parse_preferences(b"<map><string name='x'>")

    def test_parse_wrong_root(self):
        """Test that a non-map root is rejected."""
        with self.assertRaises(PreferenceStoreError):
            parse_preferences(b"<list />")

    def test_parse_unknown_type(self):
        """Test that an unknown element type is rejected."""
        with self.assertRaises(PreferenceStoreError):
            parse_preferences(b'<map><double name="x" value="1" /></map>')

    def test_parse_bad_number(self):
        """Test that a non-numeric int value is rejected."""
        with self.assertRaises(PreferenceStoreError):
            parse_preferences(b'<map><int name="x" value="abc" /></map>')

    def test_serialize_writes_header_and_sorted_keys(self):
        """Test serialized output layout."""
        content = serialize_preferences({"b": True, "a": "x", "n": 7})
        text = content.decode("utf-8")

        self.assertTrue(text.startswith("<?xml version='1.0'"))
        self.assertLess(text.index('name="a"'), text.index('name="b"'))
        self.assertIn('<boolean name="b" value="true" />', text)
        self.assertIn('<int name="n" value="7" />', text)

    def test_serialize_large_int_as_long(self):
        """Test that values beyond 32 bits are written as <long>."""
        text = serialize_preferences({"big": 2**40}).decode("utf-8")
        self.assertIn("<long", text)

    def test_serialize_parse_mixed_values(self):
        """Test that serialized content parses back to the same values."""
        values = {
            "s": "text & <markup>",
            "b": False,
            "i": -12,
            "f": 1.25,
            "set": frozenset({"x", "y"}),
        }
        self.assertEqual(parse_preferences(serialize_preferences(values)), values)

    def test_serialize_unsupported_type(self):
        """Test that unsupported values raise TypeError."""
        with self.assertRaises(TypeError):
            serialize_preferences({"x": object()})


class TestPreferenceStore(unittest.TestCase):
    """Tests for PreferenceStore and Editor."""

    def setUp(self):
        """Set up a temporary preference directory."""
        self.temp_dir = tempfile.mkdtemp()
        self.prefs_dir = Path(self.temp_dir) / "shared_prefs"

    def tearDown(self):
        """Clean up temporary directories."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_open_missing_file(self):
        """Test that a store without a backing file is empty."""
        store = PreferenceStore.open(self.prefs_dir, "tuner")

        self.assertEqual(store.get_all(), {})
        self.assertEqual(store.name, "tuner")
        self.assertFalse(store.backing_file_path().exists())

    def test_backing_file_path(self):
        """Test the backing file path accessor."""
        store = PreferenceStore.open(self.prefs_dir, "tuner")
        self.assertEqual(store.backing_file_path(), (self.prefs_dir / "tuner.xml").absolute())

    def test_commit_persists(self):
        """Test that committed values survive reopening."""
        store = PreferenceStore.open(self.prefs_dir, "main")
        ok = (
            store.edit()
            .put_string("name", "value")
            .put_boolean("flag", True)
            .put_int("count", 5)
            .put_float("ratio", 0.25)
            .put_string_set("apps", ["a", "b"])
            .commit()
        )

        self.assertTrue(ok)
        reopened = PreferenceStore.open(self.prefs_dir, "main")
        self.assertEqual(reopened.get_string("name"), "value")
        self.assertTrue(reopened.get_boolean("flag"))
        self.assertEqual(reopened.get_int("count"), 5)
        self.assertEqual(reopened.get_float("ratio"), 0.25)
        self.assertEqual(reopened.get_string_set("apps"), frozenset({"a", "b"}))

    def test_uncommitted_changes_invisible(self):
        """Test that staged changes are not visible before commit."""
        store = PreferenceStore.open(self.prefs_dir, "main")
        editor = store.edit().put_string("name", "value")

        self.assertFalse(store.contains("name"))
        editor.commit()
        self.assertTrue(store.contains("name"))

    def test_put_none_removes(self):
        """Test that putting None removes a key."""
        store = PreferenceStore.open(self.prefs_dir, "main")
        store.edit().put_string("name", "value").commit()
        store.edit().put_string("name", None).commit()

        self.assertIsNone(store.get_string("name"))
        self.assertFalse(PreferenceStore.open(self.prefs_dir, "main").contains("name"))

    def test_remove_and_clear(self):
        """Test remove() and clear()."""
        store = PreferenceStore.open(self.prefs_dir, "main")
        store.edit().put_int("a", 1).put_int("b", 2).put_int("c", 3).commit()

        store.edit().remove("a").commit()
        self.assertEqual(set(store.get_all()), {"b", "c"})

        store.edit().clear().put_int("d", 4).commit()
        self.assertEqual(store.get_all(), {"d": 4})

    def test_defaults(self):
        """Test getter defaults for missing keys."""
        store = PreferenceStore.open(self.prefs_dir, "main")

        self.assertIsNone(store.get_string("missing"))
        self.assertEqual(store.get_string("missing", "x"), "x")
        self.assertFalse(store.get_boolean("missing"))
        self.assertEqual(store.get_int("missing", 7), 7)
        self.assertIsNone(store.get_string_set("missing"))

    def test_typed_put_rejects_wrong_type(self):
        """Test that typed puts validate their argument."""
        store = PreferenceStore.open(self.prefs_dir, "main")

        with self.assertRaises(TypeError):
            store.edit().put_string("x", 1)
        with self.assertRaises(TypeError):
            store.edit().put_boolean("x", "yes")
        with self.assertRaises(TypeError):
            store.edit().put_int("x", True)

    def test_commit_world_readable(self):
        """Test that committed files are readable by others."""
        store = PreferenceStore.open(self.prefs_dir, "main")
        store.edit().put_string("k", "v").commit()

        mode = store.backing_file_path().stat().st_mode
        self.assertTrue(mode & stat.S_IROTH)

    def test_commit_private(self):
        """Test that world_readable=False keeps the file private."""
        store = PreferenceStore.open(self.prefs_dir, "main", world_readable=False)
        store.edit().put_string("k", "v").commit()

        mode = store.backing_file_path().stat().st_mode
        self.assertFalse(mode & stat.S_IROTH)

    def test_commit_leaves_no_temp_files(self):
        """Test that commit cleans up after the atomic rename."""
        store = PreferenceStore.open(self.prefs_dir, "main")
        store.edit().put_string("k", "v").commit()

        self.assertEqual([p.name for p in self.prefs_dir.iterdir()], ["main.xml"])

    def test_commit_failure_returns_false(self):
        """Test that a write failure reports False and keeps old values."""
        blocker = Path(self.temp_dir) / "blocker"
        blocker.write_text("not a directory")
        store = PreferenceStore(blocker / "main.xml")

        self.assertFalse(store.edit().put_string("k", "v").commit())
        self.assertFalse(store.contains("k"))

    def test_malformed_file_raises(self):
        """Test that opening a corrupt file raises PreferenceStoreError."""
        self.prefs_dir.mkdir(parents=True)
        (self.prefs_dir / "main.xml").write_text("<map><string")

        with self.assertRaises(PreferenceStoreError):
            PreferenceStore.open(self.prefs_dir, "main")

    def test_on_file_updated_reloads(self):
        """Test that a write notification reloads the store."""
        store = PreferenceStore.open(self.prefs_dir, "main")
        other = PreferenceStore.open(self.prefs_dir, "main")
        other.edit().put_string("k", "from other").commit()

        self.assertIsNone(store.get_string("k"))
        store.on_file_updated("main.xml")
        self.assertEqual(store.get_string("k"), "from other")

    def test_on_file_updated_ignores_other_files(self):
        """Test that notifications for other files do not reload."""
        store = PreferenceStore.open(self.prefs_dir, "main")
        PreferenceStore.open(self.prefs_dir, "main").edit().put_string("k", "v").commit()

        store.on_file_updated("tuner.xml")
        store.on_file_updated(None)
        self.assertIsNone(store.get_string("k"))

    def test_on_file_updated_ignores_corrupt_file(self):
        """Test that a corrupt rewrite keeps the previous values."""
        store = PreferenceStore.open(self.prefs_dir, "main")
        store.edit().put_string("k", "v").commit()
        store.backing_file_path().write_text("<map><string")

        with self.assertLogs("prefvault.store.preferences", level="WARNING"):
            store.on_file_updated("main.xml")
        self.assertEqual(store.get_string("k"), "v")

    def test_on_file_attributes_changed_restores_read_access(self):
        """Test that an attribute change re-asserts world-readable mode."""
        store = PreferenceStore.open(self.prefs_dir, "main")
        store.edit().put_string("k", "v").commit()
        path = store.backing_file_path()
        os.chmod(path, 0o600)

        store.on_file_attributes_changed("main.xml")

        self.assertTrue(path.stat().st_mode & stat.S_IROTH)

    def test_on_file_attributes_changed_missing_file(self):
        """Test that an attribute change for a deleted file is ignored."""
        store = PreferenceStore.open(self.prefs_dir, "main")
        store.on_file_attributes_changed("main.xml")


class _StoreWithoutPath:
    """Store that cannot report its backing file."""

    def edit(self):
        editor = MagicMock()
        editor.put_boolean.return_value = editor
        return editor


class TestPreferenceDirectoryResolver(unittest.TestCase):
    """Tests for PreferenceDirectoryResolver."""

    def setUp(self):
        """Set up temporary directories."""
        self.temp_dir = tempfile.mkdtemp()
        self.prefs_dir = Path(self.temp_dir) / "prefs"
        self.fallback = Path(self.temp_dir) / "fallback"

    def tearDown(self):
        """Clean up temporary directories."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_resolve_from_store(self):
        """Test that the directory is taken from the probe store."""
        resolver = PreferenceDirectoryResolver(
            lambda name: PreferenceStore.open(self.prefs_dir, name),
            self.fallback,
        )

        self.assertEqual(resolver.resolve(), self.prefs_dir.absolute())
        self.assertTrue((self.prefs_dir / f"{PROBE_STORE_NAME}.xml").exists())

    def test_resolve_fallback_without_accessor(self):
        """Test fallback when the store has no backing file accessor."""
        resolver = PreferenceDirectoryResolver(lambda name: _StoreWithoutPath(), self.fallback)

        with self.assertLogs("prefvault.store.resolver", level="ERROR"):
            result = resolver.resolve()

        self.assertEqual(result, self.fallback.absolute())

    def test_resolve_fallback_on_os_error(self):
        """Test fallback when opening the probe store fails."""
        factory = MagicMock(side_effect=OSError("no storage"))
        resolver = PreferenceDirectoryResolver(factory, self.fallback)

        with self.assertLogs("prefvault.store.resolver", level="ERROR"):
            self.assertEqual(resolver.resolve(), self.fallback.absolute())

    def test_resolve_is_cached(self):
        """Test that resolution happens only once."""
        factory = MagicMock(side_effect=lambda name: PreferenceStore.open(self.prefs_dir, name))
        resolver = PreferenceDirectoryResolver(factory, self.fallback)

        first = resolver.resolve()
        second = resolver.resolve()

        self.assertEqual(first, second)
        factory.assert_called_once_with(PROBE_STORE_NAME)


if __name__ == "__main__":
    unittest.main()
