"""
Tests for the cache storage adapters.
"""
import json

from harmonic_mixer.storage import JsonFileStorage, MemoryStorage, NullStorage


def test_null_storage_remembers_nothing():
    storage = NullStorage()
    storage.set_item("k", "v")
    assert storage.get_item("k") is None
    storage.remove_item("k")


def test_memory_storage_round_trip():
    storage = MemoryStorage({"a": "1"})
    assert storage.get_item("a") == "1"
    storage.set_item("b", "2")
    storage.remove_item("a")
    storage.remove_item("missing")
    assert storage.data == {"b": "2"}


class TestJsonFileStorage:

    def test_missing_file_reads_as_empty(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "cache.json")
        assert storage.get_item("qrng-cache") is None

    def test_set_creates_parent_dirs_and_persists(self, tmp_path):
        path = tmp_path / "nested" / "cache.json"
        JsonFileStorage(path).set_item("qrng-cache", "abc123")

        assert json.loads(path.read_text()) == {"qrng-cache": "abc123"}
        assert JsonFileStorage(path).get_item("qrng-cache") == "abc123"
        assert list(path.parent.glob("*.tmp")) == []

    def test_remove_keeps_other_keys(self, tmp_path):
        path = tmp_path / "cache.json"
        storage = JsonFileStorage(path)
        storage.set_item("one", "1")
        storage.set_item("two", "2")
        storage.remove_item("one")
        assert json.loads(path.read_text()) == {"two": "2"}

    def test_corrupt_file_ignored(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{broken")
        storage = JsonFileStorage(path)
        assert storage.get_item("qrng-cache") is None

        storage.set_item("qrng-cache", "ff")
        assert storage.get_item("qrng-cache") == "ff"

    def test_non_object_and_non_string_values_ignored(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("[1, 2]")
        assert JsonFileStorage(path).get_item("x") is None

        path.write_text(json.dumps({"x": 42}))
        assert JsonFileStorage(path).get_item("x") is None
