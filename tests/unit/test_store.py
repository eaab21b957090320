"""
Unit tests for the key-value stores.
"""

import sqlite3
import threading

import pytest

from kvservice import ServiceConfig, StorageError
from kvservice.models import StoredRecord
from kvservice.store import KVStore, MemoryStore, SQLiteStore, open_store


RECORD = StoredRecord(name="Ann", email="ann@x.com", password="secret")


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteStore:
    store = SQLiteStore(tmp_path / "kv.sqlite3")
    store.initialize()
    return store


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path) -> KVStore:
    """Each contract test runs against both backends."""
    if request.param == "memory":
        return MemoryStore()
    store = SQLiteStore(tmp_path / "kv.sqlite3")
    store.initialize()
    return store


class TestStoreContract:
    """Behaviour every backend must share."""

    def test_missing_key_is_none(self, store: KVStore):
        assert store.get("nobody@x.com") is None

    def test_put_then_get(self, store: KVStore):
        store.put_bytes("k", b"\x00value")
        assert store.get("k") == b"\x00value"

    def test_put_encodes_to_dict(self, store: KVStore):
        store.put(RECORD.email, RECORD)
        assert StoredRecord.from_bytes(store.get(RECORD.email)) == RECORD

    def test_put_plain_json(self, store: KVStore):
        store.put("k", {"a": [1, 2]})
        assert store.get("k") == b'{"a": [1, 2]}'

    def test_overwrite(self, store: KVStore):
        store.put_bytes("k", b"one")
        store.put_bytes("k", b"two")
        assert store.get("k") == b"two"

    def test_unencodable_value(self, store: KVStore):
        with pytest.raises(StorageError):
            store.put("k", {"bad": object()})
        assert store.get("k") is None

    def test_concurrent_puts(self, store: KVStore):
        def writer(n):
            for i in range(20):
                store.put_bytes(f"user{n}-{i}", b"x")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(store.get(f"user{n}-19") == b"x" for n in range(4))

    def test_name(self, store: KVStore):
        assert store.name in ("MemoryStore", "SQLiteStore")


class TestMemoryStore:
    def test_helpers(self):
        store = MemoryStore()
        store.put_bytes("b", b"2")
        store.put_bytes("a", b"1")

        assert len(store) == 2
        assert "a" in store
        assert sorted(store.keys()) == ["a", "b"]

        store.clear()
        assert len(store) == 0


class TestSQLiteStore:
    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "kv.sqlite3"
        first = SQLiteStore(path)
        first.initialize()
        first.put(RECORD.email, RECORD)

        second = SQLiteStore(path)
        assert StoredRecord.from_bytes(second.get(RECORD.email)) == RECORD

    def test_namespaces_are_separate(self, tmp_path):
        path = tmp_path / "kv.sqlite3"
        users = SQLiteStore(path, namespace="users")
        other = SQLiteStore(path, namespace="other")
        users.initialize()

        users.put_bytes("k", b"u")
        assert other.get("k") is None
        assert users.keys() == ["k"]

    def test_creates_parent_directory(self, tmp_path):
        store = SQLiteStore(tmp_path / "nested" / "dir" / "kv.sqlite3")
        store.initialize()
        assert store.path.exists()

    def test_missing_table_is_storage_error(self, tmp_path):
        store = SQLiteStore(tmp_path / "kv.sqlite3")  # never initialized

        with pytest.raises(StorageError):
            store.get("k")
        with pytest.raises(StorageError):
            store.put_bytes("k", b"v")

    def test_error_chains_sqlite_cause(self, tmp_path):
        store = SQLiteStore(tmp_path / "kv.sqlite3")
        with pytest.raises(StorageError) as exc:
            store.get("k")
        assert isinstance(exc.value.__cause__, sqlite3.Error)


class TestOpenStore:
    def test_memory(self):
        assert isinstance(open_store(ServiceConfig(store_backend="memory")), MemoryStore)

    def test_sqlite(self, tmp_path):
        config = ServiceConfig(
            store_backend="SQLite",
            store_path=str(tmp_path / "kv.sqlite3"),
            store_namespace="people",
        )
        store = open_store(config)
        assert isinstance(store, SQLiteStore)
        store.put_bytes("k", b"v")
        assert store.get("k") == b"v"

    def test_unknown(self):
        with pytest.raises(ValueError):
            open_store(ServiceConfig(store_backend="redis"))
