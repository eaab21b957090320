"""
=============================================================================
KVSERVICE CLI ENTRY POINT
=============================================================================

    python -m kvservice                          # 127.0.0.1:8787, memory store
    python -m kvservice --port 3000
    python -m kvservice --host 0.0.0.0           # inside a container
    python -m kvservice --store sqlite --store-path ./users.db
    python -m kvservice --log-format json

Settings come from ServiceConfig.from_env() first; flags given on the
command line win over the environment.

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .app import create_app
from .config import ServiceConfig
from .errors import StorageError
from .server import KVServer, configure_logging
from .store import BACKENDS


logger = logging.getLogger("kvservice")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kvservice",
        description="User-record service on a key-value store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m kvservice                               # Run with defaults
  python -m kvservice --port 3000                   # Custom port
  python -m kvservice --store sqlite --store-path ./users.db
  KV_STORE=sqlite WORKER_VERSION=abc123 python -m kvservice
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", help="Host to bind to (env: KV_HOST)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (env: KV_PORT)")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Worker threads (env: KV_WORKERS)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # STORE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--store", choices=BACKENDS, help="Store backend (env: KV_STORE)")
    parser.add_argument("--store-path", help="SQLite database file (env: KV_STORE_PATH)")

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (env: KV_LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Access log format (env: KV_LOG_FORMAT)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"kvservice {__version__}",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ServiceConfig:
    """Environment first, then any flag that was actually given."""
    config = ServiceConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "workers": args.workers,
        "store_backend": args.store,
        "store_path": args.store_path,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    configure_logging(config.log_level)

    try:
        app = create_app(config)
    except StorageError as e:
        logger.error(f"Cannot open store: {e.message}")
        return 1

    KVServer(config, app).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
