"""
Networking: the listening socket and per-client connections.
"""

from .connection import Connection, ConnectionState, RequestTooLarge
from .listener import ConnectionHandler, SocketListener

__all__ = [
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ConnectionHandler",
    "SocketListener",
]
