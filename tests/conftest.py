"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kvservice import Application, KVServer, MemoryStore, ServiceConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /users/ann%40example.com?verbose=1 HTTP/1.1\r\n"
        b"Host: localhost:8787\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "Ann", "email": "ann@example.com", "password": "secret"}'
    return (
        b"POST /users HTTP/1.1\r\n"
        b"Host: localhost:8787\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServiceConfig:
    """Default test configuration."""
    return ServiceConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        workers=2,
        timeout=5.0,
        keep_alive_timeout=1.0,
        worker_version="test-1234",
        log_level="WARNING",
    )


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def app(config: ServiceConfig, memory_store: MemoryStore) -> Application:
    """Application over an empty in-memory store."""
    return Application(config, memory_store)


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class LiveServer:
    """Runs a KVServer in a background thread."""

    def __init__(self, server: KVServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self):
        return self.server.address

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(self, raw: bytes) -> bytes:
        """Send one raw request and read until the server closes."""
        with socket.create_connection(self.address, timeout=5.0) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def live_server(config: ServiceConfig, memory_store: MemoryStore) -> Generator[LiveServer, None, None]:
    """A real server on an OS-assigned port, backed by memory_store."""
    server = KVServer(config, Application(config, memory_store))
    live = LiveServer(server)
    live.start()

    yield live

    live.stop()


@pytest.fixture
def live_server_factory() -> Generator:
    """Start a LiveServer around any KVServer; stopped at teardown."""
    started = []

    def start(server: KVServer) -> LiveServer:
        live = LiveServer(server)
        live.start()
        started.append(live)
        return live

    yield start

    for live in started:
        live.stop()
