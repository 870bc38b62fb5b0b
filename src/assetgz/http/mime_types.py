"""
=============================================================================
MIME TYPE LOOKUP
=============================================================================

Maps the extension of an asset's ORIGINAL path to a Content-Type.

    ┌─────────────────────────────────────────────────────────────────────┐
    │        WHICH EXTENSION?  THE ORIGINAL ONE, NEVER THE SIDECAR        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Request /app.js, we send app.js.gz with Content-Encoding: gzip   │
    │                                                                      │
    │   Content-Type comes from "app.js"  → text/javascript               │
    │   NOT from "app.js.gz"              → application/gzip  (wrong!)    │
    │                                                                      │
    │   The browser undoes Content-Encoding first, then interprets the    │
    │   bytes as Content-Type says.                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Unknown extensions get application/octet-stream. We never sniff the
bytes: sniffing compressed data guesses garbage.

=============================================================================
"""

from pathlib import PurePosixPath
from typing import Optional


MIME_TYPES = {
    # Documents and code
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",        # Source maps
    ".webmanifest": "application/manifest+json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".wasm": "application/wasm",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Media
    ".mp3": "audio/mpeg",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Archives and documents
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# application/* types that are really text and want a charset.
_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/manifest+json",
    "application/xml",
    "image/svg+xml",
}


def get_mime_type(path: str, default: Optional[str] = None) -> str:
    """
    MIME type for a path, by extension.

        >>> get_mime_type("css/app.css")
        'text/css'
        >>> get_mime_type("blob.bin")
        'application/octet-stream'
    """
    extension = PurePosixPath(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    return mime_type.startswith("text/") or mime_type in _TEXT_APPLICATION_TYPES


def get_content_type(path: str, charset: str = "utf-8") -> str:
    """
    Full Content-Type header value, with a charset for text types.

        >>> get_content_type("index.html")
        'text/html; charset=utf-8'
        >>> get_content_type("logo.png")
        'image/png'
    """
    mime_type = get_mime_type(path)

    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"

    return mime_type
