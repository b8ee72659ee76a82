"""
=============================================================================
CONTENT CODING (gzip)
=============================================================================

Content negotiation for response bodies: the client lists the codings it
can decode in Accept-Encoding, the server picks one it supports (here,
only gzip) or sends the body as-is.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    GZIP NEGOTIATION FLOW                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Client Request:                                                    │
    │   GET /echo/abc HTTP/1.1                                            │
    │   Accept-Encoding: br, gzip          ← tokens, split on ", "        │
    │        │                                                             │
    │        ▼                                                             │
    │   negotiate(["br", "gzip"]) → "gzip"                                │
    │        │                                                             │
    │        ▼                                                             │
    │   Server Response:                                                   │
    │   HTTP/1.1 200 OK                                                    │
    │   Content-Type: text/plain                                          │
    │   Content-Encoding: gzip             ← tells client to gunzip       │
    │   Content-Length: 23                 ← COMPRESSED size              │
    │                                                                      │
    │   [gzip bytes]                                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY mtime=0?
=============================================================================

A gzip member header carries a 4-byte modification time. gzip.compress()
fills it with the current time by default, so compressing "abc" twice a
second apart gives two different byte strings. Pinning mtime to 0 makes
the same echo request produce byte-identical responses every time.

=============================================================================
"""

import gzip
from typing import Iterable, Optional


GZIP = "gzip"

# zlib's own default; gzip.compress() would otherwise use 9
DEFAULT_LEVEL = 6

SUPPORTED_CODINGS = (GZIP,)


def negotiate(accept_encoding: Optional[Iterable[str]]) -> Optional[str]:
    """
    Pick the response coding for an Accept-Encoding token list.

    Tokens are compared exactly, the way the parser produced them.
    Quality values ("gzip;q=0.5") are not interpreted.

    Returns:
        "gzip" if the client listed it, otherwise None.
    """
    if not accept_encoding:
        return None
    tokens = list(accept_encoding)
    for coding in SUPPORTED_CODINGS:
        if coding in tokens:
            return coding
    return None


def gzip_encode(data: bytes, level: int = DEFAULT_LEVEL) -> bytes:
    """
    Compress ``data`` into a single gzip member.

    Args:
        data: Uncompressed body.
        level: Compression level, 1 (fastest) to 9 (smallest).

    Returns:
        Deterministic gzip bytes (mtime fixed at 0).
    """
    return gzip.compress(data, compresslevel=level, mtime=0)
