"""
=============================================================================
KVSERVICE
=============================================================================

A small user-record service on top of a key-value store.

    GET  /                  greeting
    POST /users             store {name, email, password} under email
    GET  /users/:id         fetch the stored record
    GET  /worker-version    deployed version string

Quick start:

    from kvservice import create_app, ServiceConfig, MemoryStore
    from kvservice.http import HTTPRequest

    app = create_app(ServiceConfig(), MemoryStore())
    app.handle(HTTPRequest(method="GET", path="/")).text

Or on the network:

    python -m kvservice --port 8787

=============================================================================
"""

__version__ = "0.1.0"

from .config import ServiceConfig
from .context import AppContext
from .errors import BadRequest, NotFound, ServiceError, StorageError
from .store import KVStore, MemoryStore, SQLiteStore, open_store
from .app import Application, build_router, create_app
from .server import KVServer, configure_logging

__all__ = [
    "__version__",
    "ServiceConfig",
    "AppContext",
    "ServiceError",
    "BadRequest",
    "NotFound",
    "StorageError",
    "KVStore",
    "MemoryStore",
    "SQLiteStore",
    "open_store",
    "Application",
    "build_router",
    "create_app",
    "KVServer",
    "configure_logging",
]
