"""
=============================================================================
ECHO HANDLER
=============================================================================

GET /echo/<text> sends <text> back, gzip-compressed when the client asks.

=============================================================================
THE THREE CASES
=============================================================================

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │ Accept-Encoding              │ Response                             │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │ (absent)                     │ Content-Type: text/plain             │
    │                              │ Content-Length: len(text)            │
    │                              │ text                                 │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │ list contains "gzip"         │ Content-Type: text/plain             │
    │                              │ Content-Encoding: gzip               │
    │                              │ Content-Length: len(compressed)      │
    │                              │ gzip(text)                           │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │ present, no "gzip"           │ Content-Type: text/plain             │
    │ (legacy, the default)        │ (nothing else: no length, no body)   │
    └──────────────────────────────┴──────────────────────────────────────┘

The last row is a long-standing wire quirk that existing clients of this
server rely on, so it stays the default. With
``legacy_identity_echo=False`` that row behaves like the first one.

The echoed text is the raw remainder of the target after "/echo/", not
URL-decoded: GET /echo/a%20b answers "a%20b".

=============================================================================
"""

import logging

from ..http.compression import DEFAULT_LEVEL, GZIP, gzip_encode, negotiate
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder


logger = logging.getLogger(__name__)


class EchoHandler:
    """
    Handler for /echo/*text.

    Usage:
        echo = EchoHandler(gzip_level=6)
        router.get("/echo/*text")(echo.handle)
    """

    def __init__(self, gzip_level: int = DEFAULT_LEVEL, legacy_identity_echo: bool = True):
        """
        Args:
            gzip_level: Compression level for gzip bodies (1-9).
            legacy_identity_echo: Keep the header-only answer when
                                  Accept-Encoding is sent without gzip.
        """
        self.gzip_level = gzip_level
        self.legacy_identity_echo = legacy_identity_echo

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        text = request.path_params.get("text", "")
        accept_encoding = request.headers.accept_encoding

        builder = ResponseBuilder().content_type("text/plain")

        if negotiate(accept_encoding) == GZIP:
            compressed = gzip_encode(text.encode("utf-8"), self.gzip_level)
            logger.debug(f"Echo gzip: {len(text)} -> {len(compressed)} bytes")
            return builder.header("Content-Encoding", GZIP).body(compressed).build()

        if accept_encoding is not None and self.legacy_identity_echo:
            return builder.build()

        return builder.body(text).build()
