"""
=============================================================================
HANDLERS
=============================================================================

Every handler has the same signature:

    def handler(request: HTTPRequest, params: dict, ctx: AppContext) -> HTTPResponse

and reports failure by raising a ServiceError (BadRequest, NotFound,
StorageError), never by building an error response itself.

    users.py   create_user, get_user
    meta.py    index, worker_version

=============================================================================
"""

from .users import create_user, get_user
from .meta import index, worker_version

__all__ = [
    "create_user",
    "get_user",
    "index",
    "worker_version",
]
