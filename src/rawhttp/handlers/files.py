"""
=============================================================================
FILE HANDLER
=============================================================================

Reads and writes files under one configured root directory.

    GET  /files/<name>   → 200 application/octet-stream, raw bytes
    POST /files/<name>   → 201 Created, body written to <root>/<name>

=============================================================================
FAILURE MAPPING
=============================================================================

    ┌──────────────────────────────────────────┬────────────────────────┐
    │ What went wrong                          │ Answer                 │
    ├──────────────────────────────────────────┼────────────────────────┤
    │ <name> resolves outside the root         │ 403 Forbidden          │
    │ GET: missing, unreadable, a directory... │ 404 Not Found          │
    │ POST: no Content-Length header           │ 411 Length Required    │
    │ POST: root or file cannot be written     │ 500 Internal Error     │
    └──────────────────────────────────────────┴────────────────────────┘

Every one of these has an empty body. A GET read failure is always 404,
whatever the underlying OSError was: the client only learns that there is
no file it can have.

=============================================================================
PATH CONFINEMENT
=============================================================================

<name> is the raw remainder of the target, so it can contain "../" or
start with "/":

    GET /files/../../etc/passwd   → name = "../../etc/passwd"
    GET /files//etc/passwd        → name = "/etc/passwd"

With ``confine=True`` (the default) the joined path is resolved
(following ".." and symlinks) and must still sit inside the resolved
root. With ``confine=False`` the name is appended to the root as a
string and used as-is.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder,
    created, forbidden, internal_error, length_required, not_found,
)


logger = logging.getLogger(__name__)


class FileHandler:
    """
    Download and upload handler bound to a root directory.

    The root does not have to exist yet: the first upload creates it
    (like ``mkdir -p``). Downloads from a missing root are plain 404s.

    Usage:
        files = FileHandler("/tmp/data")
        router.get("/files/*name")(files.download)
        router.post("/files/*name")(files.upload)
    """

    def __init__(self, directory: Union[str, Path], confine: bool = True):
        self.directory = Path(directory)
        self.confine = confine

    def _resolve(self, name: str) -> Optional[Path]:
        """
        Map a request name onto the filesystem.

        Returns:
            The file path, or None if confinement is on and the
            path escapes the root.

        Raises:
            ValueError: If the name holds a NUL byte, which no filesystem
                        path can contain.
        """
        if "\x00" in name:
            raise ValueError(f"embedded null byte in {name!r}")

        if not self.confine:
            return Path(f"{self.directory}/{name}")

        root = self.directory.resolve()
        full_path = (root / name).resolve()
        try:
            full_path.relative_to(root)
        except ValueError:
            logger.warning(f"Path traversal attempt: {name!r}")
            return None
        return full_path

    def download(self, request: HTTPRequest) -> HTTPResponse:
        """GET /files/<name>: the file's bytes, or 404."""
        name = request.path_params.get("name", "")
        try:
            path = self._resolve(name)
            if path is None:
                return forbidden()
            content = path.read_bytes()
        except (OSError, ValueError) as e:
            logger.debug(f"Cannot read {name!r}: {e}")
            return not_found()

        return ResponseBuilder().octet_stream(content).build()

    def upload(self, request: HTTPRequest) -> HTTPResponse:
        """
        POST /files/<name>: write the request body, truncating any
        existing file.

        ``Content-Length: 0`` is a valid upload and leaves an empty file.
        """
        if request.headers.content_length is None:
            return length_required()

        name = request.path_params.get("name", "")
        try:
            path = self._resolve(name)
            if path is None:
                return forbidden()
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes((request.body or "").encode("utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to write {name!r}: {e}")
            return internal_error()

        logger.debug(f"Wrote {request.headers.content_length} bytes to {path}")
        return created()
