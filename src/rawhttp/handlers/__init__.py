"""
=============================================================================
HANDLERS MODULE
=============================================================================

The application routes of the server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Type              │ Handlers                                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Function Handler  │ index, user_agent (no configuration)            │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Class Handler     │ EchoHandler (gzip level, identity quirk)        │
    │                   │ FileHandler (root directory, confinement)       │
    └─────────────────────────────────────────────────────────────────────┘

Every handler takes an HTTPRequest and returns an HTTPResponse; class
handlers expose bound methods for the router.

    router.get("/")(index)
    router.get("/echo/*text")(EchoHandler().handle)
    router.get("/files/*name")(FileHandler("/tmp").download)

=============================================================================
"""

from .basic import index, user_agent
from .echo import EchoHandler
from .files import FileHandler

__all__ = [
    "index",
    "user_agent",
    "EchoHandler",
    "FileHandler",
]
