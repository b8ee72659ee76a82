"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: socket server, thread pool, parser, middleware
and router.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │  accept thread          worker thread                                │
    │  ─────────────          ─────────────                                │
    │  accept()                                                            │
    │     │                                                                │
    │  pool.submit() ──────►  handle_connection(conn)                      │
    │     │  queue full?        │                                          │
    │     └─► 503, close        ├─ parse(conn.reader)                      │
    │                           │    ├─ HTTPParseError → 4xx, close        │
    │                           │    └─ nothing sent   → close, no reply   │
    │                           ├─ middleware → router → handler           │
    │                           │    └─ exception      → 500               │
    │                           ├─ sendall(response.to_bytes())            │
    │                           └─ close                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

One request, one response, one connection. The response bytes are
whatever the handler built; the server adds nothing (no Date, no Server,
no Connection header).

=============================================================================
"""

import logging
from typing import Optional, Callable

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool
from .handlers import EchoHandler, FileHandler, index, user_agent
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router,
    empty_response, internal_error,
)
from .middleware import MiddlewarePipeline, Middleware, LoggingMiddleware


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    HTTP/1.1 server.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=4221))

        @server.get("/")
        def root(request):
            return ok()

        server.use(LoggingMiddleware())
        server.run()          # blocks until SIGINT/SIGTERM or stop()

    Most callers want create_app(), which registers the standard routes.

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._socket_server = SocketServer(self.config)

        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )

        self._parser = RequestParser(
            max_line_size=self.config.max_line_size,
            max_body_size=self.config.max_body_size,
        )

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._router = Router()
        self._middleware = MiddlewarePipeline()

        # middleware.wrap(router.handle), built on first use
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

    # =========================================================================
    # CONFIGURATION METHODS
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware (first added = outermost). Returns self."""
        self._middleware.add(middleware)
        self._handler = None
        return self

    @property
    def router(self) -> Router:
        return self._router

    def get(self, path: str, **kwargs):
        """Register a GET route."""
        return self._router.get(path, **kwargs)

    def post(self, path: str, **kwargs):
        """Register a POST route."""
        return self._router.post(path, **kwargs)

    @property
    def handler(self) -> Callable[[HTTPRequest], HTTPResponse]:
        """The full request pipeline: middleware wrapped around the router."""
        if self._handler is None:
            self._handler = self._middleware.wrap(self._router.handle)
        return self._handler

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def bound_address(self) -> Optional[tuple[str, int]]:
        """(host, port) actually listened on, once running."""
        return self._socket_server.bound_address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.ready.wait(timeout)

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Returns after SIGINT/SIGTERM (main thread only) or stop().

        Args:
            host: Override config host.
            port: Override config port.

        Raises:
            OSError: If the address cannot be bound.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._thread_pool.start()

        if self.config.directory:
            logger.info(f"Serving files from {self.config.directory}")
        for route in self._router.routes():
            logger.debug(f"Route: {route.method.value:5} {route.path} -> {route.name}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """Ask a running server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("rawhttp").setLevel(level)

    def _shutdown(self):
        """
        Graceful shutdown.

        The accept loop has already stopped; queued connections get up to
        ``shutdown_timeout`` seconds to finish.
        """
        logger.info("Shutting down server...")
        logger.info(f"Thread pool at shutdown: {self._thread_pool.stats}")
        self._thread_pool.shutdown(wait=True, timeout=self.config.shutdown_timeout)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection for a worker (runs on the accept thread).

        When the queue is full the connection is answered with 503 right
        here and closed without waiting for the peer.
        """
        submitted = self._thread_pool.submit(
            self.handle_connection,
            args=(conn,),
            block=False,
        )

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting {conn.client_ip}:{conn.client_port}")
            try:
                conn.send_response(empty_response(HTTPStatus.SERVICE_UNAVAILABLE).to_bytes())
            finally:
                # On the accept thread: discard what has arrived, never wait
                conn.close(drain_timeout=0)

    def handle_connection(self, conn: Connection):
        """
        Serve exactly one request on ``conn``, then close it.

        Runs on a worker thread. Never raises for request-level problems:
        a malformed request gets its 4xx and a failing handler gets 500.
        A peer that sent nothing is routed as the default request (GET
        with an empty target), which answers 404.
        """
        with conn:
            try:
                request = self._parser.parse(conn.reader, conn.address)
            except HTTPParseError as e:
                logger.warning(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                conn.send_response(empty_response(e.status_code).to_bytes())
                return

            if request.is_empty:
                logger.debug(f"[{conn.id}] Peer sent nothing, routing the default request")

            conn.state = ConnectionState.PROCESSING

            try:
                response = self.handler(request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                response = internal_error()

            conn.send_response(response.to_bytes())


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create a server with the standard routes registered.

        GET  /              index
        GET  /user-agent    user_agent
        GET  /echo/*text    EchoHandler.handle
        GET  /files/*name   FileHandler.download   (only with a directory)
        POST /files/*name   FileHandler.upload     (only with a directory)

    Args:
        config: Server configuration.

    Returns:
        Configured HTTPServer instance, not yet running.
    """
    server = HTTPServer(config)
    config = server.config

    if config.access_log:
        server.use(LoggingMiddleware(log_format=config.log_format))

    echo = EchoHandler(
        gzip_level=config.gzip_level,
        legacy_identity_echo=config.legacy_identity_echo,
    )

    server.get("/")(index)
    server.get("/user-agent")(user_agent)
    server.get("/echo/*text", name="echo")(echo.handle)

    if config.directory:
        files = FileHandler(config.directory, confine=config.confine_files)
        server.get("/files/*name", name="download")(files.download)
        server.post("/files/*name", name="upload")(files.upload)

    return server
