"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m rawhttp --directory /tmp/data                   │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_DIRECTORY=/tmp/data python -m rawhttp                │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The file root is just another setting: it is handed to the file handler
when the app is built, never read from a global.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK         host, port, backlog, buffer_size, timeout
    REQUEST LIMITS  max_line_size, max_body_size
    THREADING       min_workers, max_workers, queue_size, shutdown_timeout
    FILES           directory, confine_files
    ECHO            gzip_level, legacy_identity_echo
    LOGGING         log_level, log_format, access_log

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 4221
    """The port number to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Maximum number of connections queued by the kernel before accept()."""

    buffer_size: int = 8192
    """Read buffer size per connection, in bytes."""

    timeout: Optional[float] = 30.0
    """
    Per-operation socket timeout in seconds.
    A client that stalls mid-request gets 408 after this long.
    None = fully blocking (a silent client holds its worker forever).
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_line_size: int = 8192
    """Longest request line (414 beyond) or header line (431 beyond)."""

    max_body_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest accepted Content-Length (413 beyond)."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads started with the server."""

    max_workers: int = 16
    """Ceiling on worker threads."""

    queue_size: int = 100
    """
    Connections allowed to wait for a free worker.
    One more than this and the new connection gets 503.
    """

    shutdown_timeout: float = 5.0
    """Seconds to let queued connections finish on shutdown."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = None
    """
    Root directory for /files/<name>.
    None = the /files routes are not registered at all (404).
    """

    confine_files: bool = True
    """Reject (403) file names that resolve outside ``directory``."""

    # ─────────────────────────────────────────────────────────────────────
    # ECHO
    # ─────────────────────────────────────────────────────────────────────

    gzip_level: int = 6
    """gzip compression level for /echo, 1 (fast) to 9 (small)."""

    legacy_identity_echo: bool = True
    """
    With Accept-Encoding present but no gzip in it, answer /echo with
    Content-Type only (no length, no body), as this server always has.
    False = send the text like a request without Accept-Encoding.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache style) or 'json'."""

    access_log: bool = True
    """Write one access-log line per request."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST       Server host (default: 127.0.0.1)
        HTTP_PORT       Server port (default: 4221)
        HTTP_WORKERS    Max worker threads (default: 16)
        HTTP_TIMEOUT    Socket timeout in seconds, "none" to block (default: 30)
        HTTP_DIRECTORY  File root for /files (default: unset)
        HTTP_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================
        """
        timeout = os.getenv("HTTP_TIMEOUT", "30")
        max_workers = int(os.getenv("HTTP_WORKERS", "16"))

        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "4221")),
            min_workers=min(cls.min_workers, max_workers),
            max_workers=max_workers,
            timeout=None if timeout.lower() == "none" else float(timeout),
            directory=os.getenv("HTTP_DIRECTORY"),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad setting fails immediately instead of
        on the first request.

        Raises:
            ValueError: On the first invalid setting found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_line_size < 64:
            raise ValueError("max_line_size must be >= 64")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        if not 1 <= self.gzip_level <= 9:
            raise ValueError(f"Invalid gzip_level: {self.gzip_level}. Must be 1-9.")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}")

        if self.directory is not None and os.path.exists(self.directory) \
                and not os.path.isdir(self.directory):
            raise ValueError(f"directory is not a directory: {self.directory}")
