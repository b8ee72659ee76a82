"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Callable, Generator, Optional
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rawhttp import HTTPServer, ServerConfig, create_app


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request with every recognised header."""
    return (
        b"GET /echo/abc HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: pytest/1.0\r\n"
        b"Accept: */*\r\n"
        b"Accept-Encoding: gzip, br\r\n"
        b"X-Ignored: yes\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a text body."""
    body = b"hello world"
    return (
        b"POST /files/notes.txt HTTP/1.1\r\n" +
        b"Host: localhost:4221\r\n" +
        b"Content-Length: %d\r\n" % len(body) +
        b"\r\n"
    ) + body


@pytest.fixture
def files_dir(tmp_path: Path) -> Path:
    """A file root that does not exist yet (uploads must create it)."""
    return tmp_path / "files"


@pytest.fixture
def config(files_dir: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        directory=str(files_dir),
        log_level="WARNING",
        access_log=False,
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class, despite the name

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.bound_address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self) -> socket.socket:
        sock = socket.create_connection(("127.0.0.1", self.port), timeout=5.0)
        return sock

    def request(self, raw: bytes, shutdown_write: bool = True) -> bytes:
        """
        Send raw bytes on a fresh connection and read until the server
        closes it.
        """
        with self.connect() as sock:
            sock.sendall(raw)
            if shutdown_write:
                sock.shutdown(socket.SHUT_WR)
            return recv_all(sock)


def recv_all(sock: socket.socket) -> bytes:
    """Read from ``sock`` until EOF."""
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes) -> tuple[str, list[str], bytes]:
    """Split raw response bytes into (status line, header lines, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    return lines[0], lines[1:], body


@pytest.fixture
def split():
    """The split_response helper, for tests that inspect raw responses."""
    return split_response


@pytest.fixture
def read_all():
    """The recv_all helper, for tests that drive their own sockets."""
    return recv_all


@pytest.fixture
def make_test_server() -> Generator[Callable[[ServerConfig], TestServer], None, None]:
    """Factory for servers with a custom configuration, stopped on teardown."""
    started = []

    def factory(server_config: ServerConfig) -> TestServer:
        test_srv = TestServer(create_app(server_config))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield factory

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server with the standard routes and a temp file root."""
    test_srv = TestServer(create_app(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
