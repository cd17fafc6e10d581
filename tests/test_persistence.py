"""Tests for the JSON-file persistent key-value store."""

from __future__ import annotations

import json
import os
from pathlib import Path
import tempfile
import unittest

from orbital.exceptions import PersistenceError
from orbital.persistence import PersistentStore


class PersistentStoreTests(unittest.TestCase):
    """Validate save, load, remove and failure handling."""

    def setUp(self) -> None:
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        self.base = Path(temp_dir.name)
        self.path = self.base / "state" / "storage.json"
        self.store = PersistentStore(self.path)

    def test_save_and_load_round_trip_with_prefix(self) -> None:
        self.assertTrue(self.store.save("theme", "dark"))
        self.assertTrue(self.store.save("menu:open", True))

        self.assertEqual(self.store.load("theme"), "dark")
        self.assertIs(self.store.load("menu:open"), True)

        raw = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(
            raw, {"orbital:persist:theme": "dark", "orbital:persist:menu:open": True}
        )

    def test_load_missing_key_or_file_returns_none(self) -> None:
        self.assertIsNone(self.store.load("theme"))
        self.store.save("other", 1)
        self.assertIsNone(self.store.load("theme"))

    def test_values_survive_new_instance(self) -> None:
        self.store.save("theme", {"mode": "dark"})
        reopened = PersistentStore(self.path)
        self.assertEqual(reopened.load("theme"), {"mode": "dark"})

    def test_remove(self) -> None:
        self.store.save("theme", "dark")
        self.assertTrue(self.store.remove("theme"))
        self.assertFalse(self.store.remove("theme"))
        self.assertIsNone(self.store.load("theme"))

    def test_remove_deletes_stored_null(self) -> None:
        self.store.save("theme", None)
        self.assertTrue(self.store.remove("theme"))
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertNotIn("orbital:persist:theme", raw)

    def test_corrupt_file_loads_none(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertLogs("orbital.persistence", level="WARNING") as logs:
            self.assertIsNone(self.store.load("theme"))
        self.assertTrue(any("persistence.load_failed" in line for line in logs.output))

    def test_non_object_file_is_treated_as_empty(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("[1, 2]", encoding="utf-8")
        with self.assertLogs("orbital.persistence", level="WARNING"):
            self.assertIsNone(self.store.load("theme"))

    def test_unserializable_value_is_rejected_without_raising(self) -> None:
        with self.assertLogs("orbital.persistence", level="WARNING") as logs:
            self.assertFalse(self.store.save("theme", object()))
        self.assertTrue(any("persistence.save_failed" in line for line in logs.output))
        self.assertFalse(self.path.exists())

    def test_available_probe_leaves_no_trace(self) -> None:
        self.store.save("theme", "dark")
        self.assertTrue(self.store.available())
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(list(raw), ["orbital:persist:theme"])

    def test_directory_path_is_rejected(self) -> None:
        with self.assertRaises(PersistenceError):
            PersistentStore(self.base)

    @unittest.skipUnless(os.name == "posix", "POSIX permissions only")
    def test_file_is_private(self) -> None:
        self.store.save("theme", "dark")
        self.assertEqual(self.path.stat().st_mode & 0o777, 0o600)


if __name__ == "__main__":
    unittest.main()
