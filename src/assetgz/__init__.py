"""
=============================================================================
ASSETGZ - Pre-Compressed Static Asset Server
=============================================================================

Serves a read-only tree of assets, picking the best stored representation
for each client and validating caches with content-derived ETags.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ASSETGZ ARCHITECTURE                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. INDEX (startup, once)                                          │
    │      - Walk the tree, FNV-1 64 hash + size for every file           │
    │      - Optionally pre-compress files that lack a sidecar            │
    │                                                                      │
    │   2. NEGOTIATION (per request)                                      │
    │      - Accept-Encoding vs. stored sidecars (.br, .gz)              │
    │      - Raw file, or decode a sidecar as last resort                 │
    │                                                                      │
    │   3. RESPONSE                                                       │
    │      - 304 on If-None-Match, ETag / Content-Encoding / Vary         │
    │      - Range requests on verbatim files                             │
    │      - Pluggable error handler (default 500)                        │
    │                                                                      │
    │   4. SERVER                                                         │
    │      - Threaded HTTP/1.1 with keep-alive, access log, CLI           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    assetgz/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m assetgz)
    ├── server.py            # HTTPServer, create_app
    ├── config.py            # ServerConfig dataclass
    ├── filesystem.py        # DirectoryFS, ZipFS
    ├── encodings.py         # Encoding descriptor, gzip codec
    ├── brotli_encoding.py   # brotli codec (optional dependency)
    ├── index.py             # FNV-1 64 index builder
    ├── negotiation.py       # representation selection
    ├── core/                # socket server, connections
    ├── http/                # request, response, ranges, MIME, status
    ├── middleware/          # pipeline, access log
    └── handlers/            # StaticServer, SPA fallback

=============================================================================
QUICK START
=============================================================================

    from assetgz import DirectoryFS, file_server, encode_on_init

    static = file_server(DirectoryFS("public"), encode_on_init)
    response = static.handle(request)

Or from the command line:

    python -m assetgz public --brotli --port 8080

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .encodings import Encoding, gzip_encoding
from .filesystem import DirEntry, DirectoryFS, ReadDirFS, ZipFS
from .handlers import (
    ErrorHandler,
    FallbackHandler,
    InternalErrorHandler,
    StaticServer,
    StaticServerBuilder,
    encode_on_init,
    file_server,
    on_error,
    spa_fallback,
)
from .index import FileInfo, IndexBuildError, build_index
from .negotiation import Resolution, negotiate
from .server import HTTPServer, create_app

__all__ = [
    "ServerConfig",
    "Encoding",
    "gzip_encoding",
    "DirEntry",
    "DirectoryFS",
    "ReadDirFS",
    "ZipFS",
    "ErrorHandler",
    "FallbackHandler",
    "InternalErrorHandler",
    "StaticServer",
    "StaticServerBuilder",
    "encode_on_init",
    "file_server",
    "on_error",
    "spa_fallback",
    "FileInfo",
    "IndexBuildError",
    "build_index",
    "Resolution",
    "negotiate",
    "HTTPServer",
    "create_app",
]
