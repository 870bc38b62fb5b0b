"""
=============================================================================
CONTENT ENCODINGS (CODEC REGISTRY)
=============================================================================

Describes the compression schemes the asset server understands.

=============================================================================
PRE-COMPRESSED SIDECARS
=============================================================================

Assets are compressed ahead of time, at build time, and stored next to
the original with an extra extension:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ONE ASSET, THREE FILES                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   app.js        raw bytes              (any client)                 │
    │   app.js.br     brotli sidecar         Accept-Encoding: br          │
    │   app.js.gz     gzip sidecar           Accept-Encoding: gzip        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Any of the three may be missing. If only a sidecar exists and the client
does not accept its encoding, the server decodes it on the fly (when the
codec has a decoder).

=============================================================================
ORDER MATTERS
=============================================================================

The registry is an ordered list and the order IS the negotiation
priority: the first codec that the client accepts and that has a sidecar
on disk wins. Brotli compresses better than gzip, so the brotli extension
prepends itself:

    [gzip]  ──add brotli──►  [brotli, gzip]

=============================================================================
"""

import gzip
import io
import shutil
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional


Decoder = Callable[[BinaryIO], BinaryIO]
Encoder = Callable[[BinaryIO], bytes]


@dataclass(frozen=True)
class Encoding:
    """
    One supported content encoding.

    Attributes:
        file_ext: Extension of the compressed sidecar, for example ".gz".
        content_encoding: Token used in Accept-Encoding and Content-Encoding
            headers, for example "gzip". Lowercase.
        decoder: Turns a compressed stream into a raw stream. ``None``
            disables on-the-fly decompression for this codec. Must raise
            right away on a malformed header.
        encoder: Compresses a raw stream. Only used when the index is built
            with encode-on-init, never while serving.
    """

    file_ext: str
    content_encoding: str
    decoder: Optional[Decoder] = None
    encoder: Optional[Encoder] = None


GZIP_MAGIC = b"\x1f\x8b"


def _gzip_decode(stream: BinaryIO) -> BinaryIO:
    # An empty file decodes to an empty body without complaint, so the
    # member header has to be checked by hand.
    magic = stream.read(len(GZIP_MAGIC))
    if magic != GZIP_MAGIC:
        raise gzip.BadGzipFile(f"Not a gzipped file ({magic!r})")

    if stream.seekable():
        stream.seek(-len(magic), io.SEEK_CUR)
    else:
        stream = io.BytesIO(magic + stream.read())

    decoded = gzip.GzipFile(fileobj=stream, mode="rb")

    # GzipFile reads the header lazily; peek forces it so a corrupt file
    # fails here rather than halfway through the copy.
    decoded.peek(1)
    return decoded


def _gzip_encode(stream: BinaryIO) -> bytes:
    buffer = io.BytesIO()

    # mtime=0 keeps the output (and therefore the ETag) reproducible.
    with gzip.GzipFile(fileobj=buffer, mode="wb", compresslevel=9, mtime=0) as out:
        shutil.copyfileobj(stream, out)

    return buffer.getvalue()


def gzip_encoding() -> Encoding:
    """The built-in gzip codec (".gz" sidecars)."""
    return Encoding(
        file_ext=".gz",
        content_encoding="gzip",
        decoder=_gzip_decode,
        encoder=_gzip_encode,
    )
