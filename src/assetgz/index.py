"""
=============================================================================
ASSET INDEX
=============================================================================

Walks the asset tree ONCE, at startup, and remembers a content hash and
size for every file.

=============================================================================
WHY HASH EVERYTHING UP FRONT?
=============================================================================

The classic static handler builds its ETag from mtime and size on every
request. Pre-compressed assets usually come out of a build pipeline (or a
zip archive) where mtimes are meaningless, so we fingerprint the CONTENT
instead:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THE INDEX                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   key (normalized path)     hash (FNV-1 64, base 36)     size       │
    │   ─────────────────────     ────────────────────────     ────       │
    │   "app.js"                  "1bp69hxb9nd93"              24919      │
    │   "app.js.gz"               "3b88egjdndqox"               2548      │
    │   "img/logo.png"            "45pls0g4wm91"                 812      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

After construction the table is frozen (MappingProxyType). Requests only
ever READ it, so any number of threads can share it without locks.

Any error while listing or reading the tree is fatal: a server with a
half-built index would return 404 for files that exist.

=============================================================================
FNV-1 IN ONE PARAGRAPH
=============================================================================

    hash = offset_basis
    for each byte:
        hash = (hash * FNV_PRIME) mod 2^64
        hash = hash XOR byte

It's not cryptographic and nobody needs it to be: the value is only
compared against what the same server handed out earlier.

=============================================================================
"""

import logging
import posixpath
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from .encodings import Encoding
from .filesystem import ReadDirFS


logger = logging.getLogger(__name__)

FNV64_OFFSET_BASIS = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"

READ_CHUNK_SIZE = 64 * 1024


class IndexBuildError(Exception):
    """The asset tree could not be fully read. Fatal at startup."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


@dataclass(frozen=True)
class FileInfo:
    """
    What we know about one stored file.

    ``content`` is only set for sidecars produced by encode-on-init; those
    live in memory because they don't exist in the tree.
    """

    hash: str
    size: int
    content: Optional[bytes] = None


class FNV64:
    """Incremental 64-bit FNV-1 hash."""

    def __init__(self):
        self.value = FNV64_OFFSET_BASIS

    def update(self, data: bytes) -> None:
        h = self.value
        for byte in data:
            h = ((h * FNV64_PRIME) & _MASK64) ^ byte
        self.value = h

    def hexdigest36(self) -> str:
        return to_base36(self.value)


def to_base36(value: int) -> str:
    if value == 0:
        return "0"

    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_DIGITS[rem])
    return "".join(reversed(digits))


class IndexBuilder:
    """
    Builds the read-only path → FileInfo table.

    Usage:
        index = IndexBuilder(fs, [gzip_encoding()], encode_on_init=True).build()
        index["app.js"].hash
    """

    def __init__(
        self,
        fs: ReadDirFS,
        encodings: Iterable[Encoding] = (),
        encode_on_init: bool = False,
    ):
        self.fs = fs
        self.encodings = list(encodings)
        self.encode_on_init = encode_on_init
        self._info: dict[str, FileInfo] = {}

    def build(self) -> Mapping[str, FileInfo]:
        """Walk the tree (and optionally encode). Raises IndexBuildError."""
        self._info = {}
        self._hash_dir(".")
        found = len(self._info)

        encoded = 0
        if self.encode_on_init:
            encoded = self._encode_missing()

        logger.info(f"Indexed {found} files ({encoded} encoded at startup)")
        return MappingProxyType(self._info)

    # =========================================================================
    # TREE WALK
    # =========================================================================

    def _hash_dir(self, path: str) -> None:
        try:
            entries = self.fs.read_dir(path)
        except Exception as e:
            raise IndexBuildError(path, f"cannot list directory: {e}") from e

        for entry in entries:
            name = posixpath.normpath(posixpath.join(path, entry.name))

            if entry.is_dir:
                self._hash_dir(name)
                continue

            self._info[name] = self._hash_file(name)

    def _hash_file(self, name: str) -> FileInfo:
        h = FNV64()
        size = 0

        try:
            with self.fs.open(name) as f:
                while True:
                    chunk = f.read(READ_CHUNK_SIZE)
                    if not chunk:
                        break
                    h.update(chunk)
                    size += len(chunk)
        except Exception as e:
            raise IndexBuildError(name, f"cannot read file: {e}") from e

        return FileInfo(hash=h.hexdigest36(), size=size)

    # =========================================================================
    # ENCODE ON INIT
    # =========================================================================

    def _is_sidecar(self, name: str) -> bool:
        return any(name.endswith(enc.file_ext) for enc in self.encodings)

    def _encode_missing(self) -> int:
        originals = [name for name in self._info if not self._is_sidecar(name)]
        encoded = 0

        for name in originals:
            original = self._info[name]

            for enc in self.encodings:
                if enc.encoder is None or name + enc.file_ext in self._info:
                    continue

                try:
                    with self.fs.open(name) as f:
                        data = enc.encoder(f)
                except Exception as e:
                    raise IndexBuildError(
                        name, f"cannot encode with {enc.content_encoding}: {e}"
                    ) from e

                self._info[name + enc.file_ext] = FileInfo(
                    hash=original.hash + enc.file_ext,
                    size=len(data),
                    content=data,
                )
                encoded += 1
                logger.debug(f"Encoded {name} with {enc.content_encoding}: "
                             f"{original.size} -> {len(data)} bytes")

        return encoded


def build_index(
    fs: ReadDirFS,
    encodings: Iterable[Encoding] = (),
    encode_on_init: bool = False,
) -> Mapping[str, FileInfo]:
    """Convenience wrapper around IndexBuilder."""
    return IndexBuilder(fs, encodings, encode_on_init).build()
