"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket: a buffered reader for the
parser, a single-shot writer for the response, and a proper TCP close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. The client may write

    send(b"GET /echo/abc HTTP/1.1\r\n\r\n")

and the server may receive it as

    recv() → b"GET /ec"
    recv() → b"ho/abc HTTP/1.1\r\n\r\n"

So the parser never calls recv() itself. It reads from a buffered file
object layered over the socket (``socket.makefile("rb")``), which turns
"give me the next line" and "give me exactly N bytes" into as many recv()
calls as it takes:

    ┌─────────────────────────────────────────────────────────────────┐
    │                                                                  │
    │   socket ──recv()──►  BufferedReader  ──readline()──► parser     │
    │                       (8 KB buffer)   ──read(n)────►             │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

There is no keep-alive. Every connection goes through exactly this:

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
     │         │                                      ▲
     │         └─── empty / broken request ───────────┤
     └──────────────────────────────────────────────────┘

=============================================================================
"""

import io
import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and debugging."""

    NEW = "new"                # Just accepted, nothing read yet
    READING = "reading"        # Parser is consuming the request
    PROCESSING = "processing"  # Request parsed, handler is executing
    WRITING = "writing"        # Sending response bytes
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED READING                                                 │
    │     └── ``reader`` is a file object over the socket's read half      │
    │                                                                      │
    │  2. TIMEOUT                                                          │
    │     └── A stalled peer makes reads raise socket.timeout              │
    │     └── None means fully blocking                                    │
    │                                                                      │
    │  3. SINGLE WRITE                                                     │
    │     └── The whole response goes out in one sendall()                 │
    │                                                                      │
    │  4. GRACEFUL CLOSE                                                   │
    │     └── FIN first, drain unread input, then close                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection identifier (for logging).
        state: Current connection state.
        created_at: Timestamp when connection was accepted.
    """

    # Required parameters
    socket: socket.socket
    address: tuple[str, int]

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192               # Reader buffer size
    timeout: Optional[float] = 30.0       # Per-operation socket timeout

    _reader: Optional[io.BufferedReader] = field(default=None, repr=False)

    def __post_init__(self):
        """Configure the socket timeout (None leaves it fully blocking)."""
        self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    @property
    def reader(self) -> io.BufferedReader:
        """
        Buffered binary reader over the socket, created on first use.

        Reads through it honour the socket timeout, so a peer that stops
        mid-request surfaces as socket.timeout in the parser.
        """
        if self._reader is None:
            self.state = ConnectionState.READING
            self._reader = self.socket.makefile("rb", buffering=self.buffer_size)
        return self._reader

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send the full response.

        Uses sendall() so that a response larger than the kernel send
        buffer is not silently truncated.

        Returns:
            True if send succeeded, False if the peer is gone.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self, drain_timeout: float = 0.5):
        """
        Close the connection gracefully.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    TCP Close Sequence                            │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   Server                              Client                     │
        │      │   FIN ──────────────────────────► │  (shutdown SHUT_WR)  │
        │      │ ◄───────────────────────── ACK   │                       │
        │      │ ◄───────── leftover bytes, FIN   │  (drained)            │
        │      │   ACK ──────────────────────────► │                       │
        │   (socket closed)                  (socket closed)               │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Closing a socket that still has unread input makes the kernel send
        RST instead of FIN, and an RST can destroy the response before
        the client has read it. That happens whenever the client sent
        more than was consumed, for example a body behind
        ``Content-Length: 0``. Draining first avoids it.

        Args:
            drain_timeout: How long each drain read may wait. 0 only
                           discards input that has already arrived, so the
                           caller never blocks.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(drain_timeout)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # Includes socket.timeout and BlockingIOError

        if self._reader is not None:
            self._reader.close()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age * 1000:.1f}ms")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows using Connection with 'with' for automatic cleanup:

            with conn:
                request = parser.parse(conn.reader)
                conn.send_response(response.to_bytes())
            # Connection closed here, whatever happened
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
