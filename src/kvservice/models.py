"""
=============================================================================
USER REPRESENTATIONS
=============================================================================

One logical user, three deliberately separate shapes:

    ┌─────────────────┬──────────────────────────┬───────────────────────┐
    │  Shape          │ Fields                   │ Lives                 │
    ├─────────────────┼──────────────────────────┼───────────────────────┤
    │  CreateRequest  │ name, email, password    │ one create call       │
    │  PublicView     │ name, email              │ one response          │
    │  StoredRecord   │ name, email, password    │ the store, key=email  │
    └─────────────────┴──────────────────────────┴───────────────────────┘

    POST body ──from_json()──► CreateRequest ──to_stored()──► StoredRecord ──► store
                                     │
                                     └──to_public()──► PublicView ──► response

PublicView has no password attribute at all, so there is nothing to
forget to strip. Only StoredRecord is ever persisted.

=============================================================================
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Union
import json

from .errors import BadRequest, StorageError


USER_FIELDS = ("name", "email", "password")


def _require_strings(data: Any, fields: tuple) -> Dict[str, str]:
    """
    Pull the given string fields out of a decoded JSON object.

    Raises:
        ValueError: If data isn't an object, or a field is missing, not
            a string, or not encodable as UTF-8 (json.loads lets lone
            "\\ud800" escapes through). The message names the offending
            field.
    """
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")

    values = {}
    for name in fields:
        if name not in data:
            raise ValueError(f"missing field `{name}`")
        value = data[name]
        if not isinstance(value, str):
            raise ValueError(f"field `{name}` must be a string")
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            raise ValueError(f"field `{name}` is not valid unicode")
        values[name] = value
    return values


@dataclass(frozen=True)
class PublicView:
    """What a client gets back from create. Never carries the password."""

    name: str
    email: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class StoredRecord:
    """
    The persisted shape, stored as JSON under key = email.

    Fetch-by-id returns this shape as-is, password included.
    """

    name: str
    email: str
    password: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_bytes(cls, raw: Union[bytes, str]) -> "StoredRecord":
        """
        Decode a value read back from the store.

        Raises:
            StorageError: If the value isn't JSON or doesn't have the
                record's shape. Either way the stored data is unusable.
        """
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            return cls(**_require_strings(json.loads(raw), USER_FIELDS))
        except (UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
            raise StorageError(f"Stored user record is corrupt: {e}") from e


@dataclass(frozen=True)
class CreateRequest:
    """
    The decoded body of POST /users.

    Extra fields in the body are ignored.
    """

    name: str
    email: str
    password: str

    @classmethod
    def from_json(cls, data: Any) -> "CreateRequest":
        """
        Build from an already-decoded JSON value.

        Raises:
            BadRequest: If data isn't an object with string name, email
                and password.
        """
        try:
            return cls(**_require_strings(data, USER_FIELDS))
        except ValueError as e:
            raise BadRequest(f"Wrong Data: {e}") from e

    def to_stored(self) -> StoredRecord:
        return StoredRecord(name=self.name, email=self.email, password=self.password)

    def to_public(self) -> PublicView:
        return PublicView(name=self.name, email=self.email)

    def __repr__(self) -> str:
        # Keeps the password out of logs and tracebacks
        return f"CreateRequest(name={self.name!r}, email={self.email!r}, password='***')"
