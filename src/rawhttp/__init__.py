"""
=============================================================================
RAWHTTP - HTTP/1.1 Server on Raw Sockets
=============================================================================

A small HTTP/1.1 server: one request per connection, a handful of fixed
routes, byte-exact responses.

    GET  /                 200, empty
    GET  /user-agent       200, the User-Agent header as text/plain
    GET  /echo/<text>      200, <text> (gzip if the client accepts it)
    GET  /files/<name>     200, file bytes  |  404
    POST /files/<name>     201, body written to <directory>/<name>

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    rawhttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m rawhttp)
    ├── server.py            # HTTPServer, create_app
    ├── config.py            # ServerConfig dataclass
    ├── core/                # Transport
    │   ├── socket_server.py # Listening socket, accept loop
    │   ├── connection.py    # Buffered reader, sendall, close
    │   └── thread_pool.py   # Bounded worker pool
    ├── http/                # Protocol
    │   ├── request.py       # Request parsing
    │   ├── response.py      # Response building
    │   ├── router.py        # (method, target) → handler
    │   ├── status_codes.py  # HTTPStatus
    │   └── compression.py   # gzip negotiation
    ├── middleware/
    │   ├── base.py          # Middleware, MiddlewarePipeline
    │   └── logging.py       # Access log
    └── handlers/
        ├── basic.py         # /, /user-agent
        ├── echo.py          # /echo/*text
        └── files.py         # /files/*name

=============================================================================
QUICK START
=============================================================================

    from rawhttp import ServerConfig, create_app

    app = create_app(ServerConfig(port=4221, directory="/tmp/data"))
    app.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
