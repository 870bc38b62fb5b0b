"""
Brotli support for the static asset server.

Lives in its own module so that the ``brotli`` library is only imported
by applications that ask for it:

    from assetgz import file_server
    from assetgz import brotli_encoding

    static = file_server(DirectoryFS("public"), brotli_encoding.add_encoding)

Brotli is prepended to the codec list, so a client sending
``Accept-Encoding: gzip, br`` gets the ".br" sidecar when one exists.
"""

import io
from typing import BinaryIO, TYPE_CHECKING

import brotli

from .encodings import Encoding

if TYPE_CHECKING:
    from .handlers.static import StaticServerBuilder


class BrotliReader(io.RawIOBase):
    """
    Forward-only stream that decompresses brotli data as it is read.

    The first compressed chunk is decoded eagerly in ``__init__`` so that a
    stream which is not brotli at all is rejected before any bytes are
    copied to the client.
    """

    chunk_size = 64 * 1024

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self._decompressor = brotli.Decompressor()
        self._pending = b""
        self._eof = False
        self._fill()

    def _fill(self) -> None:
        while not self._pending and not self._eof:
            chunk = self._stream.read(self.chunk_size)
            if not chunk:
                self._eof = True
                if not self._decompressor.is_finished():
                    raise brotli.error("brotli: truncated stream")
                break
            self._pending = self._decompressor.process(chunk)

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        self._fill()
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def close(self) -> None:
        try:
            self._stream.close()
        finally:
            super().close()


def _decode(stream: BinaryIO) -> BinaryIO:
    return io.BufferedReader(BrotliReader(stream))


def _encode(stream: BinaryIO) -> bytes:
    return brotli.compress(stream.read(), quality=11)


def brotli_encoding() -> Encoding:
    """Brotli codec (".br" sidecars)."""
    return Encoding(
        file_ext=".br",
        content_encoding="br",
        decoder=_decode,
        encoder=_encode,
    )


def add_encoding(builder: "StaticServerBuilder") -> None:
    """Option for ``file_server`` that prepends brotli to the codec list."""
    builder.add_encoding(brotli_encoding(), prepend=True)
