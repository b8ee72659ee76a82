"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The protocol half of the server: bytes in, structured request; structured
response, bytes out. Nothing in here touches a socket.

=============================================================================
MODULE COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   buffered stream holding                                    │
    │          b"GET /echo/abc HTTP/1.1\r\nUser-Agent: x\r\n\r\n"         │
    │ Output:  HTTPRequest(request_line=..., headers=..., body=None)      │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE BUILDER (response.py)                                      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   ResponseBuilder().status(HTTPStatus.OK).text("abc")        │
    │ Output:  b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n..."      │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ ROUTER (router.py)                                                  │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   GET /files/notes.txt                                       │
    │ Output:  download(request) with path_params={"name": "notes.txt"}   │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ COMPRESSION (compression.py)                                        │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Accept-Encoding negotiation and deterministic gzip                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import (
    HTTPRequest,
    RequestLine,
    Headers,
    Method,
    RequestParser,
    HTTPParseError,
    parse_request,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    # Convenience functions for common responses
    ok,                 # 200 OK
    created,            # 201 Created
    forbidden,          # 403 Forbidden
    not_found,          # 404 Not Found
    length_required,    # 411 Length Required
    internal_error,     # 500 Internal Server Error
    empty_response,     # any status, no headers, no body
)
from .router import Router, Route, RouteMatch
from .status_codes import HTTPStatus
from .compression import negotiate, gzip_encode

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestLine",
    "Headers",
    "Method",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "forbidden",
    "not_found",
    "length_required",
    "internal_error",
    "empty_response",

    # Routing
    "Router",
    "Route",
    "RouteMatch",

    # Status codes
    "HTTPStatus",

    # Content coding
    "negotiate",
    "gzip_encode",
]
