"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

The "ears" of the HTTP server: it owns the listening socket, accepts
connections and hands each one to a callback. It knows nothing about HTTP.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create the listening socket
    2. bind()      Reserve IP:PORT (port 0 = let the OS pick one)
    3. listen()    OS starts queueing incoming connections
    4. accept()    Take one queued connection; returns a NEW socket
    5. close()     Release the listening socket on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │   127.0.0.1:4221      │     Never sends/receives data
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Connection│         │ Connection│         │ Connection│
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:  restart immediately instead of waiting out TIME_WAIT
SO_REUSEPORT:  not set, so a port already in use is a bind error
TCP_NODELAY:   no Nagle delay; responses are small and written once
timeout 1.0:   accept() wakes every second to notice shutdown()

=============================================================================
SIGNAL HANDLING FOR GRACEFUL SHUTDOWN
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) stop the accept loop
instead of killing the process mid-response.

Python only allows signal handlers to be installed from the main thread.
When the server is started from any other thread (tests run it in a
background thread) handlers are skipped and shutdown() is the only way
to stop it.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(callback)                                                   │
    │        ├──► _create_socket()   socket() + setsockopt()               │
    │        ├──► bind(), listen()                                         │
    │        ├──► _setup_signals()   main thread only                      │
    │        ├──► ready.set()        bound_address is now known            │
    │        └──► _accept_loop()     BLOCKS until shutdown()               │
    │                 └──► accept() → Connection → callback(conn)          │
    │                                                                      │
    │    shutdown()        flag the loop to stop (idempotent)              │
    │    _cleanup()        restore signals, close listening socket         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, timeout...).

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None

        # Set once listening; tests wait on it before connecting
        self.ready = threading.Event()

        self._original_handlers: dict = {}

    @property
    def bound_address(self) -> Optional[Tuple[str, int]]:
        """The actual (host, port) once bound; differs when port is 0."""
        return self._bound_address

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() polls so the loop can notice shutdown()
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """Install SIGINT/SIGTERM handlers, if running on the main thread."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        This method BLOCKS until shutdown() is called.

        Args:
            connection_handler: Called with every accepted Connection, on
                                the accept thread. It must not block for
                                long (HTTPServer hands it to the pool).

        Raises:
            OSError: If the address cannot be bound.
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
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True

        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self.ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
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
            )

            connection_handler(conn)

    def shutdown(self):
        """
        Stop accepting connections.

        Safe to call from a signal handler, another thread, or more than
        once. The accept loop exits within about a second.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self.ready.clear()
        logger.info("Socket server stopped")
