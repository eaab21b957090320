"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted socket and knows how to pull complete HTTP requests
out of it.

TCP delivers bytes in arbitrary chunks. A request is complete when we have
the headers (up to \r\n\r\n) plus Content-Length bytes of body:

    recv() ──► buffer ──► "\r\n\r\n" seen? ──► Content-Length? ──► slice
                  ▲               │ no                  │ short
                  └───────────────┴─────────────────────┘

Bytes past the end of one request stay in the buffer for the next
read_request() call (pipelining on a kept-alive connection).

=============================================================================
"""

import logging
import re
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional


logger = logging.getLogger(__name__)


HEADER_END = b"\r\n\r\n"
_CONTENT_LENGTH = re.compile(rb"^content-length:[ \t]*(\d+)[ \t]*$", re.IGNORECASE | re.MULTILINE)


def _declared_length(head: bytes) -> int:
    """
    Content-Length from raw header bytes; 0 when absent or unparseable.

    Only used to know how much to read. RequestParser validates it.
    """
    found = _CONTENT_LENGTH.search(head.replace(b"\r\n", b"\n"))
    return int(found.group(1)) if found else 0


class RequestTooLarge(Exception):
    """The buffered request grew past max_request_size."""


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Peer (ip, port).
        id: Short random id used to tag log lines.
        requests_handled: Requests read so far on this connection.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request.

        The first request on a connection waits up to `timeout`; later
        ones up to `keep_alive_timeout`.

        Returns:
            The raw request bytes, or None if the client closed the
            connection or went idle on a kept-alive connection.

        Raises:
            TimeoutError: The first request never arrived in time.
            RequestTooLarge: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING
        idle_wait = self.keep_alive_timeout if self.requests_handled else self.timeout
        self.socket.settimeout(idle_wait)

        try:
            if not self._fill_until(lambda: HEADER_END in self._buffer):
                return None

            body_start = self._buffer.index(HEADER_END) + len(HEADER_END)
            request_end = body_start + _declared_length(self._buffer[:body_start])

            # A short body is passed on as-is; the parser reports it
            self._fill_until(lambda: len(self._buffer) >= request_end)

        except socket.timeout:
            if self.requests_handled:
                logger.debug(f"[{self.id}] Idle keep-alive connection, closing")
                return None
            raise TimeoutError(f"No complete request within {self.timeout}s")

        finally:
            self.socket.settimeout(self.timeout)

        request, self._buffer = self._buffer[:request_end], self._buffer[request_end:]
        self.requests_handled += 1
        return request

    def _fill_until(self, done: Callable[[], bool]) -> bool:
        """
        recv() into the buffer until done() holds.

        Returns:
            False if the peer closed (or reset) first.
        """
        while not done():
            try:
                chunk = self.socket.recv(self.buffer_size)
            except (ConnectionResetError, BrokenPipeError):
                chunk = b""
            if not chunk:
                return False

            self._buffer += chunk
            if len(self._buffer) > self.max_request_size:
                raise RequestTooLarge(
                    f"Request exceeds {self.max_request_size} bytes"
                )
        return True

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        sendall() the response.

        Returns:
            False if the client went away mid-send.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self) -> None:
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close gracefully: FIN, drain, close. Safe to call twice.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
