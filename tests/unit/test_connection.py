"""
Unit tests for per-connection request handling, driven over socketpairs.
"""

import logging
import socket
import threading
import time

import pytest

from rawhttp import ServerConfig, create_app
from rawhttp.core.connection import Connection, ConnectionState


@pytest.fixture
def server(config: ServerConfig):
    return create_app(config)


@pytest.fixture
def pair():
    client, server_side = socket.socketpair()
    yield client, server_side
    client.close()
    server_side.close()


def serve(server, pair, raw: bytes, read_all, timeout: float = 2.0) -> bytes:
    """Send ``raw`` from the client end, handle it, return the reply."""
    client, server_side = pair
    client.sendall(raw)
    client.shutdown(socket.SHUT_WR)

    server.handle_connection(Connection(socket=server_side, address=("127.0.0.1", 1), timeout=timeout))

    client.settimeout(2.0)
    return read_all(client)


class TestConnection:
    """Tests for the Connection wrapper."""

    def test_send_and_close(self, pair, read_all):
        client, server_side = pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 9))

        with conn:
            assert conn.send_response(b"hi")

        assert conn.state == ConnectionState.CLOSED
        assert conn.client_ip == "127.0.0.1"
        assert conn.client_port == 9
        client.settimeout(2.0)
        assert read_all(client) == b"hi"

    def test_close_drains_unread_input(self, pair, read_all):
        """Test that unread client bytes do not prevent a clean close."""
        client, server_side = pair
        client.sendall(b"unread bytes")
        client.shutdown(socket.SHUT_WR)

        conn = Connection(socket=server_side, address=("127.0.0.1", 9))
        conn.send_response(b"reply")
        conn.close()
        conn.close()

        client.settimeout(2.0)
        assert read_all(client) == b"reply"

    def test_close_without_waiting(self, pair, read_all):
        """Test that a zero drain timeout does not wait on an open peer."""
        client, server_side = pair
        client.sendall(b"already here")
        conn = Connection(socket=server_side, address=("127.0.0.1", 9))
        conn.send_response(b"bye")

        started = time.monotonic()
        conn.close(drain_timeout=0)

        assert time.monotonic() - started < 0.25
        assert conn.state == ConnectionState.CLOSED
        client.settimeout(2.0)
        assert read_all(client) == b"bye"

    def test_reader_is_buffered(self, pair):
        client, server_side = pair
        client.sendall(b"line one\r\nline two\r\n")
        conn = Connection(socket=server_side, address=("127.0.0.1", 9), timeout=2.0)

        assert conn.reader.readline() == b"line one\r\n"
        assert conn.reader.readline() == b"line two\r\n"
        assert conn.state == ConnectionState.READING
        conn.close()


class TestHandleConnection:
    """Tests for HTTPServer.handle_connection()."""

    def test_root(self, server, pair, read_all):
        raw = serve(server, pair, b"GET / HTTP/1.1\r\nHost: x\r\n\r\n", read_all)

        assert raw == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_unknown_path(self, server, pair, read_all):
        raw = serve(server, pair, b"GET /nope HTTP/1.1\r\n\r\n", read_all)

        assert raw == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_malformed_request_gets_400(self, server, pair, read_all):
        raw = serve(server, pair, b"BREW /pot HTTP/1.1\r\n\r\n", read_all)

        assert raw == b"HTTP/1.1 400 Bad Request\r\n\r\n"

    def test_empty_input_is_routed(self, server, pair, read_all):
        """Test that a peer which sends nothing gets the default request's 404."""
        assert serve(server, pair, b"", read_all) == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_stalled_client_gets_408(self, server, pair, read_all):
        """Test that a peer which stops mid-request times out."""
        client, server_side = pair
        client.sendall(b"GET / HTTP/1.1\r\n")

        server.handle_connection(Connection(socket=server_side, address=("127.0.0.1", 1), timeout=0.2))

        client.shutdown(socket.SHUT_WR)
        client.settimeout(2.0)
        assert read_all(client) == b"HTTP/1.1 408 Request Timeout\r\n\r\n"

    def test_handler_exception_gets_500(self, server, pair, read_all):
        @server.get("/boom")
        def boom(request):
            raise RuntimeError("boom")

        raw = serve(server, pair, b"GET /boom HTTP/1.1\r\n\r\n", read_all)

        assert raw == b"HTTP/1.1 500 Internal Server Error\r\n\r\n"

    def test_post_without_length_gets_411(self, server, pair, read_all):
        raw = serve(server, pair, b"POST /files/x HTTP/1.1\r\n\r\nbody", read_all)

        assert raw == b"HTTP/1.1 411 Length Required\r\n\r\n"


class TestOverload:
    """Tests for the full-queue path."""

    def test_full_pool_gets_503(self, files_dir, pair, read_all, caplog):
        """Test that a connection with no room in the queue is refused."""
        server = create_app(ServerConfig(
            port=0, min_workers=1, max_workers=1, queue_size=1,
            directory=str(files_dir), access_log=False,
        ))
        pool = server._thread_pool
        pool.start()
        release = threading.Event()
        running = threading.Event()

        def hold():
            running.set()
            release.wait(5.0)

        try:
            pool.submit(hold)
            assert running.wait(2.0)
            pool.submit(hold)

            client, server_side = pair
            server._handle_connection(Connection(socket=server_side, address=("127.0.0.1", 1)))

            client.shutdown(socket.SHUT_WR)
            client.settimeout(2.0)
            assert read_all(client) == b"HTTP/1.1 503 Service Unavailable\r\n\r\n"
            assert "rejecting 127.0.0.1:1" in caplog.text
        finally:
            release.set()
            pool.shutdown(wait=False)

    def test_rejection_does_not_wait_for_peer(self, files_dir, pair, read_all):
        """Test that refusing a silent, still-open peer returns at once."""
        server = create_app(ServerConfig(
            port=0, min_workers=1, max_workers=1, queue_size=1,
            directory=str(files_dir), access_log=False,
        ))
        pool = server._thread_pool
        pool.start()
        release = threading.Event()
        running = threading.Event()

        def hold():
            running.set()
            release.wait(5.0)

        try:
            pool.submit(hold)
            assert running.wait(2.0)
            pool.submit(hold)

            client, server_side = pair
            client.sendall(b"GET / HTTP/1.1\r\n")
            started = time.monotonic()
            server._handle_connection(Connection(socket=server_side, address=("127.0.0.1", 1)))
            elapsed = time.monotonic() - started

            assert elapsed < 0.25
            client.settimeout(2.0)
            assert read_all(client) == b"HTTP/1.1 503 Service Unavailable\r\n\r\n"
        finally:
            release.set()
            pool.shutdown(wait=False)


class TestShutdown:
    """Tests for HTTPServer._shutdown()."""

    def test_logs_pool_stats(self, server, caplog):
        """Test that shutdown reports the pool's worker and task counts."""
        caplog.set_level(logging.INFO, logger="rawhttp")
        server._thread_pool.start()

        server._shutdown()

        assert "Thread pool at shutdown" in caplog.text
        assert "'total': 2" in caplog.text
        assert server._thread_pool.worker_count == 0
