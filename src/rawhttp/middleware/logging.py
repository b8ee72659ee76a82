"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

Writes one log line per handled request, after the response is built.

    127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /echo/abc" 200 3 0.41ms
    {"request_id": "1f3a9c2e", "method": "GET", "target": "/echo/abc", ...}

It only observes. The response goes back to the connection handler
exactly as the router produced it, with no extra headers.

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# Separate logger so access logs can be routed or silenced on their own:
#   logging.getLogger("rawhttp.access").setLevel(logging.WARNING)
logger = logging.getLogger("rawhttp.access")


@dataclass
class RequestLog:
    """
    Structured log entry for a request.

    request_id:     Short random ID, to correlate with error logs
    method:         GET or POST
    target:         Request target, as received
    client_ip:      Client's IP address
    user_agent:     User-Agent header, "-" if absent
    status_code:    HTTP response code
    content_length: Response body size in bytes
    duration_ms:    Time spent in the handler chain
    timestamp:      When the request was processed
    """

    request_id: str
    method: str
    target: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Apache-style access line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Should be FIRST in the pipeline so its timing covers everything
    after it.

    Usage:
        pipeline.add(LoggingMiddleware(log_format="json"))
        pipeline.add(LoggingMiddleware(skip_targets=["/"]))
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        skip_targets: Optional[list[str]] = None,
    ):
        """
        Args:
            log_format: "text" (Apache style) or "json".
            log_level: Level access lines are logged at.
            skip_targets: Targets not to log at all.
        """
        self.log_format = log_format
        self.log_level = log_level
        self.skip_targets = set(skip_targets or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"[{request_id}] Request failed: {request.method.value} {request.target} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if request.target in self.skip_targets:
            return response

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method.value,
            target=request.target,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=response.body_length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response
