"""
=============================================================================
USER RESOURCE HANDLERS
=============================================================================

    POST /users        create_user   body → CreateRequest → store, reply PublicView
    GET  /users/:id    get_user      store[id] → StoredRecord, reply as-is

The key is always the email. There is no separate id scheme: the ":id"
in the fetch route IS the email used at creation time.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        CREATE FLOW                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   request.json ──► CreateRequest.from_json() ──► BadRequest?        │
    │                           │                                          │
    │              ┌────────────┴────────────┐                            │
    │              ▼                         ▼                            │
    │        to_stored()                to_public()                       │
    │              │                         │                            │
    │   store.put(email, record)             │                            │
    │              │ StorageError?           │                            │
    │              ▼                         ▼                            │
    │            done ─────────────────► 200 {name, email}                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Creating an email that already exists replaces the stored record. No
existence check is made before the write.

=============================================================================
"""

import logging
from typing import Dict

from ..context import AppContext
from ..errors import BadRequest, NotFound, StorageError
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok
from ..models import CreateRequest, StoredRecord


logger = logging.getLogger(__name__)


def create_user(request: HTTPRequest, params: Dict[str, str], ctx: AppContext) -> HTTPResponse:
    """
    Create (or replace) the user keyed by the body's email.

    Raises:
        BadRequest: Body isn't JSON, or lacks a string name/email/password.
            Nothing is written.
        StorageError: The store rejected the write.
    """
    user = CreateRequest.from_json(request.json)

    record = user.to_stored()
    view = user.to_public()

    ctx.store.put(user.email, record)
    logger.info(f"Stored user {user.email}")

    return ok(view.to_dict())


def get_user(request: HTTPRequest, params: Dict[str, str], ctx: AppContext) -> HTTPResponse:
    """
    Return the stored record for params["id"].

    The full StoredRecord is returned, password field included.

    Raises:
        BadRequest: No "id" parameter was bound.
        NotFound: Nothing stored under that key.
        StorageError: The read failed or the stored value is corrupt.
    """
    user_id = params.get("id")
    if not user_id:
        raise BadRequest("Bad Request")

    raw = ctx.store.get(user_id)
    if raw is None:
        raise NotFound("User not found")

    try:
        record = StoredRecord.from_bytes(raw)
    except StorageError:
        logger.error(f"Corrupt record under key {user_id!r}")
        raise

    return ok(record.to_dict())
