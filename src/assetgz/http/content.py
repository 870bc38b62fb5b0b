"""
=============================================================================
SERVING SEEKABLE CONTENT (RANGE REQUESTS)
=============================================================================

When the stored bytes can be sent untouched and the stream can seek, we
can answer partial requests:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        RANGE REQUESTS                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Range: bytes=0-99        first 100 bytes                          │
    │   Range: bytes=100-        from byte 100 to the end                 │
    │   Range: bytes=-100        last 100 bytes                           │
    │   Range: bytes=0-0,-1      first and last byte (multipart reply)    │
    │                                                                      │
    │   206 Partial Content                                               │
    │   Content-Range: bytes 0-99/24919                                   │
    │   Content-Length: 100                                               │
    │                                                                      │
    │   Nothing overlaps the file → 416 Range Not Satisfiable             │
    │                              Content-Range: bytes */24919           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Ranges always address the bytes ON THE WIRE: for a gzip sidecar sent with
Content-Encoding: gzip, "bytes=0-99" means the first 100 compressed bytes.

Preconditions handled here:

    If-Match    ETag list or "*"; mismatch → 412 Precondition Failed
    If-Range    Range is honored only if it names the current ETag.
                The date form never matches: assets have no mtime.

If-None-Match was already answered by the caller (304). Last-Modified is
never sent for the same reason If-Range dates never match.

=============================================================================
"""

import io
import secrets
from dataclasses import dataclass
from typing import BinaryIO

from .request import HTTPRequest
from .response import HTTPResponse
from .status_codes import HTTPStatus


COPY_CHUNK_SIZE = 64 * 1024


class RangeError(ValueError):
    """The Range header cannot be satisfied (→ 416)."""


@dataclass(frozen=True)
class ByteRange:
    start: int
    length: int

    def content_range(self, size: int) -> str:
        return f"bytes {self.start}-{self.start + self.length - 1}/{size}"


def _strip_etag(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    return value


def etag_matches(header: str, etag: str) -> bool:
    """
    Strong comparison of an If-Match style list against our ETag.

    Our validators are sent unquoted; clients may echo them back quoted
    or not, so both spellings match. Weak tags ("W/...") never match.
    """
    if not etag:
        return False

    for candidate in header.split(","):
        candidate = candidate.strip()
        if candidate == "*":
            return True
        if candidate.startswith("W/"):
            continue
        if _strip_etag(candidate) == etag:
            return True

    return False


def parse_range(header: str, size: int) -> list[ByteRange]:
    """
    Parse a Range header against a representation of ``size`` bytes.

    Returns an empty list for an empty header.

    Raises:
        RangeError: Malformed header, or no range overlaps the content.
    """
    if not header:
        return []

    prefix = "bytes="
    if not header.startswith(prefix):
        raise RangeError("invalid range")

    ranges = []
    no_overlap = False

    for part in header[len(prefix):].split(","):
        part = part.strip()
        if not part:
            continue

        start, sep, end = part.partition("-")
        if not sep:
            raise RangeError("invalid range")
        start, end = start.strip(), end.strip()

        if not start:
            # Suffix range: the last N bytes.
            if not end.isdigit():
                raise RangeError("invalid range")
            suffix = min(int(end), size)
            ranges.append(ByteRange(start=size - suffix, length=suffix))
            continue

        if not start.isdigit():
            raise RangeError("invalid range")
        first = int(start)

        if first >= size:
            # Valid syntax, but entirely past the end.
            no_overlap = True
            continue

        if not end:
            ranges.append(ByteRange(start=first, length=size - first))
            continue

        if not end.isdigit():
            raise RangeError("invalid range")
        last = min(int(end), size - 1)
        if first > int(end):
            raise RangeError("invalid range")

        ranges.append(ByteRange(start=first, length=last - first + 1))

    if no_overlap and not ranges:
        raise RangeError("invalid range: failed to overlap")

    return ranges


def read_range(content: BinaryIO, byte_range: ByteRange) -> bytes:
    content.seek(byte_range.start)
    buffer = io.BytesIO()
    remaining = byte_range.length

    while remaining > 0:
        chunk = content.read(min(COPY_CHUNK_SIZE, remaining))
        if not chunk:
            break
        buffer.write(chunk)
        remaining -= len(chunk)

    return buffer.getvalue()


def serve_content(response: HTTPResponse, request: HTTPRequest, content: BinaryIO) -> HTTPResponse:
    """
    Fill ``response`` from a seekable stream, honoring Range requests.

    ``response`` already carries Content-Type, ETag and (maybe)
    Content-Encoding. I/O errors propagate to the caller.
    """
    etag = response.get_header("ETag")

    if_match = request.get_header("if-match")
    if if_match and not etag_matches(if_match, etag):
        response.status = HTTPStatus.PRECONDITION_FAILED
        response.del_header("Content-Length")
        response.body = b""
        return response

    size = content.seek(0, io.SEEK_END)
    content.seek(0)

    range_header = request.get_header("range")
    if_range = request.get_header("if-range")
    if range_header and if_range and _strip_etag(if_range) != etag:
        range_header = ""

    response.set_header("Accept-Ranges", "bytes")

    try:
        ranges = parse_range(range_header, size)
    except RangeError as e:
        response.status = HTTPStatus.RANGE_NOT_SATISFIABLE
        response.set_header("Content-Range", f"bytes */{size}")
        response.del_header("Content-Length")
        response.del_header("Content-Encoding")
        response.set_header("Content-Type", "text/plain; charset=utf-8")
        response.body = f"{e}\n".encode("utf-8")
        return response

    if sum(r.length for r in ranges) > size:
        # Overlapping ranges asking for more than the whole file: send it all.
        ranges = []

    if not ranges:
        response.body = read_range(content, ByteRange(start=0, length=size))
        response.set_header("Content-Length", str(size))
        return response

    response.status = HTTPStatus.PARTIAL_CONTENT

    if len(ranges) == 1:
        byte_range = ranges[0]
        response.body = read_range(content, byte_range)
        response.set_header("Content-Range", byte_range.content_range(size))
        response.set_header("Content-Length", str(len(response.body)))
        return response

    boundary = secrets.token_hex(15)
    part_type = response.get_header("Content-Type")
    body = io.BytesIO()

    for byte_range in ranges:
        body.write(f"--{boundary}\r\n".encode("latin-1"))
        if part_type:
            body.write(f"Content-Type: {part_type}\r\n".encode("latin-1"))
        body.write(f"Content-Range: {byte_range.content_range(size)}\r\n\r\n".encode("latin-1"))
        body.write(read_range(content, byte_range))
        body.write(b"\r\n")
    body.write(f"--{boundary}--\r\n".encode("latin-1"))

    response.body = body.getvalue()
    response.set_header("Content-Type", f"multipart/byteranges; boundary={boundary}")
    response.set_header("Content-Length", str(len(response.body)))
    return response
