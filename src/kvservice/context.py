"""
Per-application dependencies handed to every handler.

Handlers receive an AppContext as their third argument instead of reaching
for module globals or os.environ. Tests build one around a MemoryStore.
"""

from dataclasses import dataclass, field

from .config import ServiceConfig
from .store import KVStore


@dataclass
class AppContext:
    """
    The store collaborator and the configuration.

    Shared by all in-flight requests. It holds no per-request state, so
    nothing here needs locking; the store does its own.
    """

    store: KVStore
    config: ServiceConfig = field(default_factory=ServiceConfig)
