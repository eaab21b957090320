"""
=============================================================================
KEY-VALUE STORE CONTRACT
=============================================================================

The service only needs two things from its storage:

    put(key, value)  →  None                  raises StorageError
    get(key)         →  bytes | None          raises StorageError

Durability, replication and consistency belong to the implementation.
The handlers decode whatever get() returns themselves.

Implementations MUST be safe to call from several request threads at
once. A put() for an existing key silently replaces it.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
import json

from ..errors import StorageError


class KVStore(ABC):
    """
    Abstract key-value store.

    Subclasses implement get() and put_bytes(). put() is shared: it JSON
    encodes the value and hands the bytes to put_bytes().
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """
        Read the raw value for key.

        Returns:
            The stored bytes, or None if the key was never written.

        Raises:
            StorageError: If the read itself failed.
        """

    @abstractmethod
    def put_bytes(self, key: str, data: bytes) -> None:
        """
        Write raw bytes under key, replacing any previous value.

        Raises:
            StorageError: If the write failed.
        """

    def put(self, key: str, value: Any) -> None:
        """
        JSON-encode value and write it under key.

        Objects with a to_dict() method (StoredRecord) are encoded through
        it; anything else must already be JSON-serializable.

        Raises:
            StorageError: If the value can't be encoded or the write failed.
        """
        if hasattr(value, "to_dict"):
            value = value.to_dict()
        try:
            data = json.dumps(value, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise StorageError(f"Cannot encode value for key {key!r}: {e}") from e
        self.put_bytes(key, data)

    def close(self) -> None:
        """Release any resources. Default is a no-op."""

    @property
    def name(self) -> str:
        return self.__class__.__name__
