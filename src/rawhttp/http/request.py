"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns a readable byte stream into a structured HTTPRequest.

The parser never sees the socket itself. It reads from a buffered,
line-oriented binary stream - in production that is the read half of the
client socket (``sock.makefile("rb")``), in tests it is just an
``io.BytesIO``. Anything with ``readline()`` and ``read()`` works.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │    POST /files/notes.txt HTTP/1.1\r\n                          │ │
    │  │    ─┬── ────────┬─────── ────┬───                               │ │
    │  │   Method     Target       Version                               │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    Host: localhost:4221\r\n                                    │ │
    │  │    User-Agent: curl/8.4.0\r\n                                  │ │
    │  │    Accept-Encoding: gzip, br\r\n                               │ │
    │  │    Content-Length: 5\r\n                                       │ │
    │  │    X-Anything-Else: ignored\r\n                                │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE ───────────────────────────────────────────────────┐ │
    │  │    \r\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY (only when Content-Length > 0) ──────────────────────────┐ │
    │  │    hello                                                        │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THREE PHASES, NO BACKTRACKING
=============================================================================

    stream ──► 1. REQUEST LINE ──► 2. HEADERS ──► 3. BODY ──► HTTPRequest
                  one line           until ""        exactly N bytes
                  3 tokens           "Key: Value"    N = Content-Length

1. REQUEST LINE: split on whitespace into method, target, version.
   A missing token, or a method other than GET/POST, is a parse error
   that names the token that failed.

2. HEADERS: each line splits on the literal ": ". Only a fixed set of
   header names is recognised, matched exactly as spelled below. The rest
   are dropped on the floor (not stored, not rejected):

        Host             → headers.host
        User-Agent       → headers.user_agent
        Accept           → headers.accept
        Accept-Encoding  → headers.accept_encoding  (split on ", ")
        Content-Length   → headers.content_length   (non-negative int)

3. BODY: read exactly Content-Length bytes. A short read is a hard
   failure, never a partial body. No Content-Length, or Content-Length: 0,
   means no read is attempted at all - even if more bytes are waiting.

=============================================================================
THE EMPTY-INPUT LENIENCY
=============================================================================

If the peer closes before sending a single line, parse() does NOT fail.
It returns a default request (GET, empty target, empty version). The
request is routed like any other: no route matches the empty target, so
the peer gets a 404.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Dict, List, Optional
import re
import socket

from .status_codes import HTTPStatus


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Every failure the parser can hit is folded into this one exception:

        - missing / malformed request-line tokens
        - unsupported method
        - non-numeric Content-Length
        - short body read
        - underlying I/O failure (including read timeouts)
        - body or line that is not valid UTF-8
        - line or body over the configured size limits

    It carries the HTTP status the connection handler should answer with.
    Most failures are plain 400 Bad Request; size and timeout failures
    carry the more specific 408/413/414/431.
    """

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = HTTPStatus(status_code)


class Method(str, Enum):
    """The two request methods this server understands."""

    GET = "GET"
    POST = "POST"


@dataclass
class RequestLine:
    """
    The first line of a request: ``METHOD SP TARGET SP VERSION``.

    Defaults describe the "nothing was sent" request; once parsing of a
    line begins, all three fields must come from the wire.
    """

    method: Method = Method.GET
    target: str = ""
    version: str = ""


@dataclass
class Headers:
    """
    The recognised request headers.

    Each field is None when the header was not sent. There is no generic
    name → value dict: unknown headers are not kept.
    """

    host: Optional[str] = None
    user_agent: Optional[str] = None
    accept: Optional[str] = None
    accept_encoding: Optional[List[str]] = None
    content_length: Optional[int] = None


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    REQUEST LIFECYCLE
    =========================================================================

        socket stream             HTTPRequest               handler
        (buffered reader) ─parse─►  dataclass   ──route──►  function
                                       │
                                       └── created per connection,
                                           discarded when it closes

    The router never mutates the parsed object: it hands handlers a copy
    with ``path_params`` filled in.

    =========================================================================
    """

    request_line: RequestLine = field(default_factory=RequestLine)
    headers: Headers = field(default_factory=Headers)
    body: Optional[str] = None

    # Metadata, not part of the message itself
    client_address: tuple[str, int] = ("", 0)
    path_params: Dict[str, str] = field(default_factory=dict)

    @property
    def method(self) -> Method:
        return self.request_line.method

    @property
    def target(self) -> str:
        return self.request_line.target

    @property
    def version(self) -> str:
        return self.request_line.version

    @property
    def user_agent(self) -> Optional[str]:
        return self.headers.user_agent

    @property
    def is_empty(self) -> bool:
        """True for the default request produced when no line was received."""
        return not self.request_line.version

    def accepts_encoding(self, coding: str) -> bool:
        """
        Check whether ``coding`` is one of the Accept-Encoding tokens.

        Matching is exact: "gzip" matches the token "gzip" but not
        "x-gzip" and not "gzip;q=1.0".
        """
        return coding in (self.headers.accept_encoding or [])


class RequestParser:
    """
    Parses a request off a buffered binary stream.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        stream.readline()
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  1. Request line ─────────────────────────────────────────────────│
        │     │  EOF right away?        → default (empty) request           │
        │     │  bad / missing token?   → HTTPParseError(400)               │
        │     │  longer than limit?     → HTTPParseError(414)               │
        │     ▼                                                             │
        │  2. Header lines until "" or EOF ─────────────────────────────────│
        │     │  no ": " separator?     → line ignored                      │
        │     │  bad Content-Length?    → HTTPParseError(400)               │
        │     │  Content-Length > max?  → HTTPParseError(413)               │
        │     ▼                                                             │
        │  3. stream.read(Content-Length) ──────────────────────────────────│
        │     │  fewer bytes than told? → HTTPParseError(400)               │
        │     │  not UTF-8?             → HTTPParseError(400)               │
        └───────────────────────────────────────────────────────────────────┘
              │
              ▼
        HTTPRequest dataclass

    ==========================================================================
    """

    HEADER_SEPARATOR = ": "
    ENCODING_SEPARATOR = ", "

    # Header name → Headers attribute, for the plain-text headers
    TEXT_HEADERS = {
        "Host": "host",
        "User-Agent": "user_agent",
        "Accept": "accept",
    }

    # ASCII digits only: int() alone would also accept "+5", " 5", "1_000"
    CONTENT_LENGTH_PATTERN = re.compile(r"[0-9]+")

    def __init__(
        self,
        max_line_size: int = 8192,
        max_body_size: int = 10 * 1024 * 1024,
    ):
        """
        Initialize the request parser.

        Args:
            max_line_size: Longest request or header line accepted, in
                           bytes, not counting the line terminator.
            max_body_size: Largest Content-Length accepted. The check
                           happens before any body byte is read.
        """
        self.max_line_size = max_line_size
        self.max_body_size = max_body_size

    def parse(
        self,
        stream: BinaryIO,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse one request from ``stream``.

        Args:
            stream: Buffered binary reader positioned at the request start.
            client_address: Client's (ip, port) tuple, kept for logging.

        Returns:
            The parsed request, or a default request if the stream was
            already at EOF.

        Raises:
            HTTPParseError: If the request is malformed or unreadable.
        """
        request = HTTPRequest(client_address=client_address)

        # =====================================================================
        # PHASE 1: Request line
        # =====================================================================
        line = self._read_line(stream, HTTPStatus.URI_TOO_LONG)
        if line is None:
            return request
        request.request_line = self._parse_request_line(line)

        # =====================================================================
        # PHASE 2: Headers
        # =====================================================================
        self._parse_headers(stream, request.headers)

        # =====================================================================
        # PHASE 3: Body
        # =====================================================================
        request.body = self._read_body(stream, request.headers.content_length)

        return request

    def _parse_request_line(self, line: str) -> RequestLine:
        """
        Split the request line into its three tokens.

        Tokens are checked in order, so the error names the first one that
        is missing. Anything after the third token is ignored.
        """
        tokens = line.split()

        if not tokens:
            raise HTTPParseError("Failed to parse HTTP method")
        try:
            method = Method(tokens[0])
        except ValueError:
            raise HTTPParseError("Failed to parse HTTP method")

        if len(tokens) < 2:
            raise HTTPParseError("Failed to parse request target")
        if len(tokens) < 3:
            raise HTTPParseError("Failed to parse HTTP version")

        return RequestLine(method=method, target=tokens[1], version=tokens[2])

    def _parse_headers(self, stream: BinaryIO, headers: Headers) -> None:
        """
        Consume header lines up to and including the blank separator line.

        End of stream also ends the header block. A repeated header simply
        overwrites the earlier value.
        """
        while True:
            line = self._read_line(stream, HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE)
            if not line:
                break  # blank line or EOF

            name, separator, value = line.partition(self.HEADER_SEPARATOR)
            if not separator:
                continue

            if name in self.TEXT_HEADERS:
                setattr(headers, self.TEXT_HEADERS[name], value)
            elif name == "Accept-Encoding":
                headers.accept_encoding = value.split(self.ENCODING_SEPARATOR)
            elif name == "Content-Length":
                headers.content_length = self._parse_content_length(value)

    def _parse_content_length(self, value: str) -> int:
        value = value.strip()
        if not self.CONTENT_LENGTH_PATTERN.fullmatch(value):
            raise HTTPParseError("Failed to parse Content-Length")

        length = int(value)
        if length > self.max_body_size:
            raise HTTPParseError(
                f"Request body too large: {length} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )
        return length

    def _read_body(self, stream: BinaryIO, content_length: Optional[int]) -> Optional[str]:
        """
        Read exactly ``content_length`` bytes and decode them as UTF-8.

        Returns None without touching the stream when there is nothing
        to read.
        """
        if not content_length:
            return None

        data = self._io(stream.read, content_length)
        if len(data) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(data)}"
            )
        return self._decode(data)

    def _read_line(self, stream: BinaryIO, too_long_status: HTTPStatus) -> Optional[str]:
        """
        Read one line and strip its terminator.

        A line ends at LF; one CR right before it is dropped too, so both
        CRLF and bare LF clients work.

        Returns:
            The decoded line, or None at end of stream.
        """
        # Room for the CRLF on top of the limit
        raw = self._io(stream.readline, self.max_line_size + 2)
        if not raw:
            return None

        if raw.endswith(b"\n"):
            raw = raw[:-1]
            if raw.endswith(b"\r"):
                raw = raw[:-1]

        if len(raw) > self.max_line_size:
            raise HTTPParseError(
                f"Line exceeds {self.max_line_size} bytes",
                status_code=too_long_status,
            )

        return self._decode(raw)

    @staticmethod
    def _io(read, size: int) -> bytes:
        """Run a stream read, folding I/O failures into HTTPParseError."""
        try:
            return read(size)
        except socket.timeout as e:
            raise HTTPParseError(
                "Timed out reading request",
                status_code=HTTPStatus.REQUEST_TIMEOUT,
            ) from e
        except OSError as e:
            raise HTTPParseError(f"IO Error: {e}") from e

    @staticmethod
    def _decode(data: bytes) -> str:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise HTTPParseError(f"UTF-8 Error: {e}") from e


def parse_request(
    stream: BinaryIO,
    client_address: tuple[str, int] = ("", 0),
    max_line_size: int = 8192,
    max_body_size: int = 10 * 1024 * 1024,
) -> HTTPRequest:
    """
    Convenience function to parse an HTTP request.

    Creates a RequestParser instance and parses one request in one call.
    Use RequestParser directly to reuse the same limits across connections.
    """
    parser = RequestParser(max_line_size=max_line_size, max_body_size=max_body_size)
    return parser.parse(stream, client_address)
