"""
=============================================================================
CORE NETWORKING MODULE
=============================================================================

The transport half of the server: sockets, connections and threads.
Nothing in here knows what an HTTP request looks like.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer                ThreadPool              Connection     │
    │   ────────────                ──────────              ──────────     │
    │   accept() loop  ──submit──►  bounded queue  ──run──► reader         │
    │   (one thread)                N workers               send_response  │
    │                                                       close          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

1. SocketServer: owns the listening socket, turns accepts into Connections.
2. ThreadPool:   runs connection handling off the accept thread, with a
                 ceiling on workers and on queued connections.
3. Connection:   buffered reads, one sendall(), graceful close.

Each connection is handled start to finish by one worker: one request,
one response, close.
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Accepts connections
    "Connection",       # Wrapper for client socket
    "ConnectionState",  # Connection lifecycle states
    "ThreadPool",       # Bounded worker threads
]
