import tempfile
import unittest
from pathlib import Path

from name_normalizer.storage import InMemoryKeyValueStore, SqliteKeyValueStore


class TestSqliteKeyValueStore(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.path = Path(tmp.name) / "nested" / "store.sqlite3"
        self.store = SqliteKeyValueStore(self.path)
        self.addCleanup(self.store.close)

    def test_get_set_delete(self) -> None:
        self.assertIsNone(self.store.get("missing"))
        self.store.set("a", b"one")
        self.store.set("a", b"two")
        self.assertEqual(self.store.get("a"), b"two")
        self.store.delete("a")
        self.assertIsNone(self.store.get("a"))
        self.store.delete("a")

    def test_values_survive_reopen(self) -> None:
        self.store.set("mappings", "Müller".encode("utf-8"))
        reopened = SqliteKeyValueStore(self.path)
        self.addCleanup(reopened.close)
        self.assertEqual(reopened.get("mappings").decode("utf-8"), "Müller")
        self.assertEqual(reopened.keys(), ["mappings"])


class TestInMemoryKeyValueStore(unittest.TestCase):
    def test_round_trip(self) -> None:
        store = InMemoryKeyValueStore({"x": b"1"})
        self.assertEqual(store.get("x"), b"1")
        store.set("y", b"2")
        store.delete("x")
        self.assertEqual(store.keys(), ["y"])


if __name__ == "__main__":
    unittest.main()
