"""
=============================================================================
MIDDLEWARE MODULE
=============================================================================

Cross-cutting behaviour wrapped around the router:

    Request → [LoggingMiddleware] → router.handle → handler
                       ↑                               │
    Response ←─────────┴───────────────────────────────┘

LoggingMiddleware: one access-log line per request, text or JSON.
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
