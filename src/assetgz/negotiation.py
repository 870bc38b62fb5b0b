"""
=============================================================================
ENCODING NEGOTIATION
=============================================================================

Picks which stored file answers a request.

=============================================================================
THE THREE-STEP DECISION
=============================================================================

    Request: GET /app.js   Accept-Encoding: gzip, br

    ┌─────────────────────────────────────────────────────────────────────┐
    │  1. COMPRESSED AND ACCEPTED                                         │
    │     for codec in registry order:                                    │
    │         client accepts codec?  and  "app.js" + ext indexed?         │
    │         → send sidecar bytes as-is, Content-Encoding: <codec>       │
    │                                                                      │
    │  2. NATIVE                                                          │
    │     "app.js" indexed?                                               │
    │         → send raw bytes, no Content-Encoding                       │
    │                                                                      │
    │  3. DECOMPRESS FALLBACK                                             │
    │     for codec in registry order:                                    │
    │         "app.js" + ext indexed?  and  codec can decode?             │
    │         → decode sidecar on the fly, ETag = hash + "U"              │
    │                                                                      │
    │  Nothing matched → 404                                              │
    └─────────────────────────────────────────────────────────────────────┘

Cheapest first: bytes that need no work beat bytes that need decoding.

The decoded variant gets its own ETag ("U" for Uncompressed). The same
sidecar served compressed and served decoded are different payloads, so
they must never share a validator.

Accept-Encoding matching is a plain case-insensitive substring test; q
values are not interpreted.

=============================================================================
"""

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .encodings import Decoder, Encoding
from .index import FileInfo


DECODED_ETAG_SUFFIX = "U"


@dataclass(frozen=True)
class Resolution:
    """
    The representation chosen for one request.

    Attributes:
        path: Logical asset path (no leading slash, no codec suffix).
        suffix: Codec extension of the stored file, "" for the raw file.
        content_encoding: Value for Content-Encoding, "" for none.
        etag: Validator to send and to compare with If-None-Match.
        info: Index record of the stored file.
        decoder: Set only on the decompress-fallback path.
        varies: True when a sidecar exists, i.e. the body depends on
            Accept-Encoding.
    """

    path: str
    suffix: str
    content_encoding: str
    etag: str
    info: FileInfo
    decoder: Optional[Decoder] = None
    varies: bool = False

    @property
    def stored_path(self) -> str:
        return self.path + self.suffix

    @property
    def content_length(self) -> int:
        """Known size of the body, 0 when it depends on decoding."""
        return 0 if self.decoder is not None else self.info.size


def negotiate(
    index: Mapping[str, FileInfo],
    encodings: Sequence[Encoding],
    path: str,
    accept_encoding: str = "",
) -> Optional[Resolution]:
    """
    Resolve a request path to a stored representation.

    Args:
        index: Read-only asset index.
        encodings: Codec registry in priority order.
        path: Request path with the leading slash removed.
        accept_encoding: Raw Accept-Encoding header value ("" if absent).

    Returns:
        A Resolution, or None when the asset does not exist.
    """
    varies = any(path + enc.file_ext in index for enc in encodings)

    if accept_encoding:
        accepted = accept_encoding.lower()

        for enc in encodings:
            if enc.content_encoding not in accepted:
                continue

            info = index.get(path + enc.file_ext)
            if info is None:
                continue

            return Resolution(
                path=path,
                suffix=enc.file_ext,
                content_encoding=enc.content_encoding,
                etag=info.hash,
                info=info,
                varies=varies,
            )

    info = index.get(path)
    if info is not None:
        return Resolution(
            path=path,
            suffix="",
            content_encoding="",
            etag=info.hash,
            info=info,
            varies=varies,
        )

    for enc in encodings:
        info = index.get(path + enc.file_ext)
        if info is None or enc.decoder is None:
            continue

        return Resolution(
            path=path,
            suffix=enc.file_ext,
            content_encoding="",
            etag=info.hash + DECODED_ETAG_SUFFIX,
            info=info,
            decoder=enc.decoder,
            varies=varies,
        )

    return None
