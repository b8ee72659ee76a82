"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds the exact bytes written back on the socket.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                  ← status line               │
    │    Content-Type: text/plain\r\n         ┐                           │
    │    Content-Encoding: gzip\r\n           ├ zero or more headers      │
    │    Content-Length: 23\r\n               ┘                           │
    │    \r\n                                 ← blank line                │
    │    <23 body bytes>                      ← optional body             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
NOTHING IS ADDED BEHIND YOUR BACK
=============================================================================

Many servers quietly add Date, Server and Content-Length to every
response. This one does not: ``to_bytes()`` writes exactly the headers
that were set, in the order they were set. So

    ok().to_bytes()         == b"HTTP/1.1 200 OK\r\n\r\n"
    not_found().to_bytes()  == b"HTTP/1.1 404 Not Found\r\n\r\n"

Content-Length is added by ``ResponseBuilder.body()`` at the moment a
body is attached, which is what keeps it in step with the bytes actually
sent (including after compression).

The response is serialized once, in full, and written with a single
``sendall``. There is no streaming.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from .status_codes import HTTPStatus


CRLF = "\r\n"

STATUS_LINE_OK = HTTPStatus.OK.status_line                  # HTTP/1.1 200 OK
STATUS_LINE_CREATED = HTTPStatus.CREATED.status_line        # HTTP/1.1 201 Created
STATUS_LINE_NOT_FOUND = HTTPStatus.NOT_FOUND.status_line    # HTTP/1.1 404 Not Found


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    A plain data container. ResponseBuilder is the convenient way to
    make one.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns          to_bytes()              Connection
        HTTPResponse    ─────►   serializes    ─────►    sendall()
                                 once
    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)  # insertion-ordered
    body: Optional[bytes] = None

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return self.status.status_line

    @property
    def body_length(self) -> int:
        return len(self.body) if self.body else 0

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for method chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self) -> bytes:
        """
        Serialize the response for ``socket.sendall()``.

            HTTP/1.1 200 OK\\r\\n          ← Status line
            Content-Type: text/plain\\r\\n ← Headers, in insertion order
            \\r\\n                         ← Empty line (separator)
            abc                          ← Body bytes, if any
        """
        lines = [self.status_line]

        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")

        # Empty line separates headers from body
        lines.append("")

        head = CRLF.join(lines).encode("utf-8") + CRLF.encode("ascii")
        return head + (self.body or b"")


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

    ==========================================================================
    METHOD CHAINING
    ==========================================================================

    Each method returns ``self`` except ``build()``:

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/plain")
            .header("Content-Encoding", "gzip")
            .body(compressed)
            .build())

    Header order on the wire follows call order, so the example above
    produces Content-Type, Content-Encoding, Content-Length.

    ==========================================================================
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: Optional[bytes] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single response header."""
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Attach a body and set Content-Length to its byte size.

        Strings are encoded as UTF-8 first, so the length is always a
        byte count and never a character count.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        self._headers["Content-Length"] = str(len(body))
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Plain text body: Content-Type, then Content-Length, then text."""
        return self.content_type("text/plain").body(text)

    def octet_stream(self, data: bytes) -> "ResponseBuilder":
        """Raw binary body, as used for file downloads."""
        return self.content_type("application/octet-stream").body(data)

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        """Build and serialize the response to bytes in one step."""
        return self.build().to_bytes()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the responses the routes and the connection handler
# produce. All of them except ok(text) have an empty body and no headers.
#
# =============================================================================

def ok(text: Optional[str] = None) -> HTTPResponse:
    """
    Create a 200 OK response.

    With ``text`` the body is sent as text/plain with its Content-Length;
    without it the response is the bare status line.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if text is not None:
        builder.text(text)
    return builder.build()


def created() -> HTTPResponse:
    """Create a 201 Created response (file upload succeeded)."""
    return empty_response(HTTPStatus.CREATED)


def not_found() -> HTTPResponse:
    """Create a 404 Not Found response with an empty body."""
    return empty_response(HTTPStatus.NOT_FOUND)


def forbidden() -> HTTPResponse:
    """Create a 403 Forbidden response (path escapes the file root)."""
    return empty_response(HTTPStatus.FORBIDDEN)


def length_required() -> HTTPResponse:
    """Create a 411 Length Required response (upload without Content-Length)."""
    return empty_response(HTTPStatus.LENGTH_REQUIRED)


def internal_error() -> HTTPResponse:
    """Create a 500 Internal Server Error response. Never leaks details."""
    return empty_response(HTTPStatus.INTERNAL_SERVER_ERROR)


def empty_response(status: HTTPStatus) -> HTTPResponse:
    """A bare status line plus blank line, for any status."""
    return ResponseBuilder().status(status).build()
