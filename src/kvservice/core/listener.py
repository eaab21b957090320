"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and nothing else. Each accepted client is
wrapped in a Connection and handed to a callback; what happens to it
after that is the server's business.

    socket() ─► setsockopt() ─► bind() ─► listen() ─► accept loop
                                                          │
                          every accepted client ◄─────────┘
                                   │
                                   ▼
                       connection_handler(Connection)

accept() polls with a 1 second timeout so that shutdown() (from a
signal handler or another thread) is noticed promptly.

SIGINT and SIGTERM trigger shutdown() when the listener runs in the main
thread. Previous handlers are restored on the way out.

=============================================================================
"""

import signal
import socket
import logging
import threading
from typing import Callable, Optional, Tuple

from ..config import ServiceConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ConnectionHandler = Callable[[Connection], None]


class SocketListener:
    """
    Accepts TCP connections for the service.

        listener = SocketListener(config)
        listener.start(handle_connection)   # blocks until shutdown()

    With port 0 the OS picks a free port; `address` reports the real one
    once `wait_until_ready()` returns.
    """

    ACCEPT_POLL_SECONDS = 1.0

    def __init__(self, config: ServiceConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._address: Tuple[str, int] = (config.host, config.port)
        self._ready = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port)."""
        return self._address

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(self.ACCEPT_POLL_SECONDS)
        return sock

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self) -> None:
        # signal.signal() only works in the main thread
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, connection_handler: ConnectionHandler) -> None:
        """
        Bind, listen and accept until shutdown() is called.

        Raises:
            OSError: The address could not be bound.
        """
        self._socket = self._create_socket()
        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()
        self._ready.set()

        logger.info(f"Listening on {self._address[0]}:{self._address[1]}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: ConnectionHandler) -> None:
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self) -> None:
        """Stop accepting. Idempotent; safe from any thread."""
        if self._running:
            logger.info("Shutting down listener...")
        self._running = False

    def _cleanup(self) -> None:
        self._restore_signals()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._ready.clear()
        logger.info("Listener stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready.wait(timeout)
