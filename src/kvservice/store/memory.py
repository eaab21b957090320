"""
In-process key-value store.

Nothing survives a restart. Used by the test-suite and as the default
backend when running locally.
"""

import threading
from typing import Dict, List, Optional

from .base import KVStore


class MemoryStore(KVStore):
    """
    A dict behind a lock.

    The lock makes every get/put atomic with respect to the others, which
    is all the handlers rely on. Two puts for the same key race and the
    last one wins.
    """

    def __init__(self):
        self._data: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def put_bytes(self, key: str, data: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(data)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data
