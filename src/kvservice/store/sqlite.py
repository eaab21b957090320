"""SQLite-backed key-value store."""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

from ..errors import StorageError
from .base import KVStore


logger = logging.getLogger(__name__)


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


class SQLiteStore(KVStore):
    """
    Values live in one table keyed by (namespace, key).

    A fresh connection is opened per operation, so the store can be shared
    by every worker thread without extra locking; SQLite serializes the
    writes. INSERT OR REPLACE gives the overwrite-on-put semantics.
    """

    def __init__(self, path: Union[str, Path], namespace: str = "users"):
        self._path = Path(path).expanduser()
        self._namespace = namespace

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._path, check_same_thread=False)

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        """One connection per operation: commit on success, always close."""
        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the database file and schema if they don't exist."""
        try:
            _ensure_directory(self._path)
            with self._session() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv (
                        namespace TEXT NOT NULL,
                        key TEXT NOT NULL,
                        value BLOB NOT NULL,
                        PRIMARY KEY (namespace, key)
                    )
                    """
                )
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Cannot initialize store at {self._path}: {e}") from e
        logger.info(f"SQLite store ready at {self._path} (namespace={self._namespace})")

    def get(self, key: str) -> Optional[bytes]:
        try:
            with self._session() as conn:
                row = conn.execute(
                    "SELECT value FROM kv WHERE namespace = ? AND key = ?",
                    (self._namespace, key),
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Read failed for key {key!r}: {e}") from e
        if row is None:
            return None
        value = row[0]
        return value.encode("utf-8") if isinstance(value, str) else bytes(value)

    def put_bytes(self, key: str, data: bytes) -> None:
        try:
            with self._session() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO kv (namespace, key, value) VALUES (?, ?, ?)",
                    (self._namespace, key, sqlite3.Binary(data)),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Write failed for key {key!r}: {e}") from e

    def keys(self) -> List[str]:
        try:
            with self._session() as conn:
                rows = conn.execute(
                    "SELECT key FROM kv WHERE namespace = ? ORDER BY key",
                    (self._namespace,),
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Listing keys failed: {e}") from e
        return [row[0] for row in rows]
