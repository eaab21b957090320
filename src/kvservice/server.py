"""
=============================================================================
KV SERVER
=============================================================================

Puts the Application on the network.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    SocketListener ──accept──► Connection                             │
    │                                   │                                  │
    │                                   ▼ submit                           │
    │                          ThreadPoolExecutor                          │
    │                                   │                                  │
    │                                   ▼ worker thread                    │
    │          ┌──────────── keep-alive loop ────────────┐                 │
    │          │  read_request ─► RequestParser.parse     │                 │
    │          │        ─► Application.handle             │                 │
    │          │        ─► Connection / Keep-Alive headers│                 │
    │          │        ─► send_response                  │                 │
    │          └──────────────────────────────────────────┘                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Errors before the Application sees a request (malformed bytes, a client
that never finishes sending) are answered here with a JSON error and the
connection is closed. Everything after parsing is the Application's job.

Shutdown: stop accepting, then let the executor finish the connections it
already has.

=============================================================================
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Optional, Tuple

from .app import Application
from .config import ServiceConfig
from .core import Connection, ConnectionState, RequestTooLarge, SocketListener
from .http import HTTPParseError, HTTPStatus, RequestParser, error_response


logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging once, at process start."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("kvservice").setLevel(numeric_level)


class KVServer:
    """
    Threaded HTTP/1.1 server for an Application.

        server = KVServer(config, create_app(config))
        server.run()     # blocks; Ctrl+C to stop

    For tests, run() can sit in a background thread:

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready()
        host, port = server.address
        ...
        server.shutdown()
    """

    def __init__(self, config: ServiceConfig, app: Application):
        self.config = config
        self.config.validate()
        self.app = app

        self._listener = SocketListener(config)
        self._parser = RequestParser(max_request_size=config.max_request_size)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._running = False

    @property
    def address(self) -> Tuple[str, int]:
        return self._listener.address

    @property
    def is_running(self) -> bool:
        return self._running

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._listener.wait_until_ready(timeout)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self) -> None:
        """Serve until shutdown() or SIGINT/SIGTERM."""
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.workers,
            thread_name_prefix="kvservice-worker",
        )
        self._running = True

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{self.config.port} "
            f"({self.config.workers} workers, {self.app.store.name} store)"
        )
        self.app.router.print_routes()

        try:
            self._listener.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self) -> None:
        """Ask the listener to stop. run() returns once in-flight work ends."""
        self._listener.shutdown()

    def _shutdown(self) -> None:
        logger.info("Shutting down server...")
        self._running = False
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.app.close()
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection) -> None:
        """Called on the accept thread; hands the connection to a worker."""
        try:
            future = self._executor.submit(self._process_connection, conn)
        except RuntimeError:
            # Executor already shut down
            logger.warning(f"[{conn.id}] Server shutting down, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server shutting down")
            conn.close()
            return
        future.add_done_callback(partial(self._connection_done, conn))

    def _connection_done(self, conn: Connection, future: Future) -> None:
        """Log anything that escaped the keep-alive loop."""
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(
                f"[{conn.id}] Connection from {conn.client_ip} failed: {error!r}",
                exc_info=error,
            )

    def _process_connection(self, conn: Connection) -> None:
        """Keep-alive loop for one client (runs in a worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLarge as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                    self._send_error(conn, e.status_code, str(e))
                    break

                conn.state = ConnectionState.PROCESSING
                response = self.app.handle(request)

                keep_alive = request.is_keep_alive and self.config.keep_alive
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                    )
                else:
                    response.headers["Connection"] = "close"

                if not conn.send_response(response.to_bytes(self.config.server_name)):
                    break

                if not keep_alive:
                    break

                conn.set_keep_alive()

    def _send_error(self, conn: Connection, status: int, message: str) -> None:
        """Answer a request that never reached the Application."""
        response = error_response(status, message)
        response.headers["Connection"] = "close"
        conn.send_response(response.to_bytes(self.config.server_name))
