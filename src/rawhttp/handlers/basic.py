"""
=============================================================================
BASIC HANDLERS
=============================================================================

The two routes that need no configuration at all:

    GET /             → HTTP/1.1 200 OK\r\n\r\n
    GET /user-agent   → 200, text/plain, body = the User-Agent value

Both are plain functions: there is no state to carry, so there is no
reason for a class.
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


def index(request: HTTPRequest) -> HTTPResponse:
    """Root route: bare 200, no headers, no body."""
    return ok()


def user_agent(request: HTTPRequest) -> HTTPResponse:
    """
    Echo the User-Agent header back as text/plain.

    A request without User-Agent gets the bare 200, same as the root.
    An empty User-Agent value is still a value: text/plain, length 0.
    """
    if request.user_agent is None:
        return ok()
    return ok(request.user_agent)
