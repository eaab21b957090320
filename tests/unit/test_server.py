"""
Unit tests for KVServer connection handling, without a listening socket.
"""

import logging
import socket
from concurrent.futures import ThreadPoolExecutor

import pytest

from kvservice import Application, KVServer, ServiceConfig
from kvservice.core import Connection


@pytest.fixture
def server(config: ServiceConfig, app: Application):
    server = KVServer(config, app)
    server._executor = ThreadPoolExecutor(max_workers=1)
    server._running = True
    yield server
    server._executor.shutdown(wait=True)


@pytest.fixture
def pair():
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    client_side.close()
    server_side.close()


@pytest.fixture
def conn(pair):
    return Connection(socket=pair[0], address=("127.0.0.1", 1234), timeout=1.0)


class TestWorkerFailures:
    def test_unexpected_error_is_logged(self, server, conn, monkeypatch, caplog):
        def broken_read():
            raise OSError("recv exploded")

        monkeypatch.setattr(conn, "read_request", broken_read)

        with caplog.at_level(logging.ERROR, logger="kvservice.server"):
            server._handle_connection(conn)
            server._executor.shutdown(wait=True)

        assert f"[{conn.id}]" in caplog.text
        assert "recv exploded" in caplog.text

    def test_clean_close_logs_nothing(self, server, conn, pair, caplog):
        pair[1].close()

        with caplog.at_level(logging.ERROR, logger="kvservice.server"):
            server._handle_connection(conn)
            server._executor.shutdown(wait=True)

        assert caplog.records == []
