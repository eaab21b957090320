"""
=============================================================================
STORE COLLABORATORS
=============================================================================

    base.py    KVStore contract (get / put)
    memory.py  MemoryStore, in-process dict
    sqlite.py  SQLiteStore, single-file persistence

    store = open_store(config)     # picks the backend from config

=============================================================================
"""

from .base import KVStore
from .memory import MemoryStore
from .sqlite import SQLiteStore


BACKENDS = ("memory", "sqlite")


def open_store(config) -> KVStore:
    """
    Build the store selected by config.store_backend.

    Raises:
        ValueError: For an unknown backend name.
        StorageError: If the SQLite database can't be initialized.
    """
    backend = config.store_backend.lower()

    if backend == "memory":
        return MemoryStore()

    if backend == "sqlite":
        store = SQLiteStore(config.store_path, namespace=config.store_namespace)
        store.initialize()
        return store

    raise ValueError(f"Unknown store backend: {config.store_backend!r} (expected one of {BACKENDS})")


__all__ = [
    "KVStore",
    "MemoryStore",
    "SQLiteStore",
    "BACKENDS",
    "open_store",
]
