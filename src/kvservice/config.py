"""
=============================================================================
SERVICE CONFIGURATION
=============================================================================

Every knob the service has, in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m kvservice --port 3000                           │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── KV_PORT=3000 python -m kvservice                          │
    │                                                                      │
    │   3. Defaults in ServiceConfig                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Handlers don't read os.environ. They get the config through the
AppContext they're called with, which keeps them testable with any
values.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from . import __version__


@dataclass
class ServiceConfig:
    """
    Configuration for the service and its listener.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog, buffer_size, timeout
    HTTP        keep_alive, keep_alive_timeout, max_request_size
    WORKERS     workers
    STORE       store_backend, store_path, store_namespace
    APPLICATION worker_version, greeting
    LOGGING     log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" inside containers."""

    port: int = 8787
    """Port to listen on."""

    backlog: int = 128
    """Pending connections the kernel queues before refusing."""

    buffer_size: int = 8192
    """recv() chunk size in bytes."""

    timeout: Optional[float] = 30.0
    """Socket timeout for the first request on a connection, seconds."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 1024 * 1024
    """Largest accepted request (headers + body), bytes. Bigger gets 413."""

    # ─────────────────────────────────────────────────────────────────────
    # WORKERS
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 8
    """Threads serving connections concurrently."""

    # ─────────────────────────────────────────────────────────────────────
    # STORE
    # ─────────────────────────────────────────────────────────────────────

    store_backend: str = "memory"
    """Backend name: memory or sqlite."""

    store_path: str = "data/users.sqlite3"
    """Database file for the sqlite backend."""

    store_namespace: str = "users"
    """Logical bucket the users live in, like a KV namespace binding."""

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────

    worker_version: str = __version__
    """Returned verbatim by GET /worker-version."""

    greeting: str = "Hello from Workers!"
    """Returned by GET /."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: "text" (combined-log style) or "json"."""

    server_name: str = f"kvservice/{__version__}"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """
        Build a config from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        KV_HOST          bind address        (default: 127.0.0.1)
        KV_PORT          port                (default: 8787)
        KV_WORKERS       worker threads      (default: 8)
        KV_TIMEOUT       socket timeout, s   (default: 30)
        KV_STORE         memory | sqlite     (default: memory)
        KV_STORE_PATH    sqlite file         (default: data/users.sqlite3)
        KV_NAMESPACE     store namespace     (default: users)
        KV_LOG_LEVEL     logging level       (default: INFO)
        KV_LOG_FORMAT    text | json         (default: text)
        WORKER_VERSION   /worker-version     (default: package version)
        WORKERS_RS_VERSION  read when WORKER_VERSION is unset or empty

        =====================================================================
        """
        defaults = cls()
        return cls(
            host=os.getenv("KV_HOST", defaults.host),
            port=int(os.getenv("KV_PORT", str(defaults.port))),
            workers=int(os.getenv("KV_WORKERS", str(defaults.workers))),
            timeout=float(os.getenv("KV_TIMEOUT", str(defaults.timeout))),
            store_backend=os.getenv("KV_STORE", defaults.store_backend),
            store_path=os.getenv("KV_STORE_PATH", defaults.store_path),
            store_namespace=os.getenv("KV_NAMESPACE", defaults.store_namespace),
            log_level=os.getenv("KV_LOG_LEVEL", defaults.log_level),
            log_format=os.getenv("KV_LOG_FORMAT", defaults.log_format),
            worker_version=(
                os.getenv("WORKER_VERSION")
                or os.getenv("WORKERS_RS_VERSION")
                or defaults.worker_version
            ),
        )

    def validate(self) -> None:
        """
        Fail fast on values that can't work.

        Called once at startup so a typo in the environment stops the
        process immediately instead of on the first request.

        Raises:
            ValueError: Describing the first bad value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.store_backend.lower() not in ("memory", "sqlite"):
            raise ValueError(f"Unknown store backend: {self.store_backend!r}")

        if not self.worker_version:
            raise ValueError("worker_version must not be empty")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', not {self.log_format!r}")
