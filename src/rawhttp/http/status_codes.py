"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The closed set of status codes this server can emit, with the reason
phrases that appear on the wire.

=============================================================================
WHICH CODES, AND WHY ONLY THESE
=============================================================================

The routes only ever answer with three statuses:

    ┌────────┬──────────────────────────────────────────────────────────┐
    │  200   │ OK          - index, user-agent, echo, file download     │
    │  201   │ Created     - file upload                                │
    │  404   │ Not Found   - unknown target, missing file               │
    └────────┴──────────────────────────────────────────────────────────┘

Everything else is produced by the connection handler when a request
cannot be served at all:

    ┌────────┬──────────────────────────────────────────────────────────┐
    │  400   │ Bad Request          - request line/header/body broken   │
    │  403   │ Forbidden            - file name escapes the root        │
    │  408   │ Request Timeout      - peer stalled mid-request          │
    │  411   │ Length Required      - upload without Content-Length     │
    │  413   │ Payload Too Large    - Content-Length over the limit     │
    │  414   │ URI Too Long         - request line over the limit       │
    │  431   │ Header Too Large     - header line over the limit        │
    │  500   │ Internal Error       - handler blew up (e.g. disk full)  │
    │  503   │ Service Unavailable  - worker queue is full              │
    └────────┴──────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.OK
        <HTTPStatus.OK: 200>
        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.OK.phrase
        'OK'
        >>> HTTPStatus.NOT_FOUND.status_line
        'HTTP/1.1 404 Not Found'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    REQUEST_TIMEOUT = 408
    LENGTH_REQUIRED = 411
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 200 OK
                     ─── ──
                      │   │
                      │   └── Reason phrase
                      └────── Status code
        """
        return _STATUS_PHRASES[self]

    @property
    def status_line(self) -> str:
        """The full HTTP/1.1 status line, without the trailing CRLF."""
        return f"HTTP/1.1 {int(self)} {self.phrase}"


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.LENGTH_REQUIRED: "Length Required",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.URI_TOO_LONG: "URI Too Long",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}
