"""
=============================================================================
PRE-COMPRESSED STATIC ASSET HANDLER
=============================================================================

Serves a read-only asset tree, preferring pre-compressed sidecars.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request ──► method GET/HEAD? ──no──► 405 + Allow: GET, HEAD       │
    │                     │                                                │
    │                    yes                                               │
    │                     ▼                                                │
    │               negotiate() ──nothing──► 404                           │
    │                     │                                                │
    │                     ▼                                                │
    │   If-None-Match == ETag? ──yes──► 304 (no body, no I/O)              │
    │                     │                                                │
    │                     ▼                                                │
    │   headers: Content-Type, ETag, Content-Encoding, Vary               │
    │                     │                                                │
    │                     ▼                                                │
    │   open stored file ──error──► error handler (default: 500)          │
    │                     │                                                │
    │                     ▼                                                │
    │   HEAD? ──yes──► headers only                                        │
    │                     │                                                │
    │                     ▼                                                │
    │   decode needed? ──error──► drop ETag, error handler                 │
    │                     │                                                │
    │                     ▼                                                │
    │   verbatim + seekable ──► serve_content (Range support)              │
    │   otherwise          ──► copy stream to body                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The behavior mirrors nginx's gzip_static module, except that a sidecar
can be decompressed for a client that does not accept its encoding.

=============================================================================
USAGE
=============================================================================

    from assetgz import DirectoryFS, file_server, encode_on_init
    from assetgz import brotli_encoding

    static = file_server(DirectoryFS("public"),
                         brotli_encoding.add_encoding,
                         encode_on_init)

    response = static.handle(request)

=============================================================================
"""

import io
import logging
import shutil
from contextlib import ExitStack
from typing import BinaryIO, Callable, Mapping, Optional, Protocol, Sequence

from ..encodings import Encoding, gzip_encoding
from ..filesystem import ReadDirFS
from ..http.content import serve_content
from ..http.mime_types import get_content_type
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    internal_error,
    method_not_allowed,
    not_found,
    not_modified,
)
from ..http.status_codes import HTTPStatus
from ..index import FileInfo, IndexBuilder
from ..negotiation import Resolution, negotiate


logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["GET", "HEAD"]
METHOD_NOT_ALLOWED_MESSAGE = "Method Not Allowed\n\nmethod should be GET or HEAD"


class ErrorHandler(Protocol):
    """
    Decides what the client sees when reading an asset fails.

    ``response`` is the response built so far (status 200, asset headers
    set). Return it modified, or return a brand new response.
    """

    def handle_failure(
        self, response: HTTPResponse, request: HTTPRequest, error: Exception
    ) -> HTTPResponse:
        ...


class InternalErrorHandler:
    """Default error handler: log with traceback, answer an opaque 500."""

    def handle_failure(
        self, response: HTTPResponse, request: HTTPRequest, error: Exception
    ) -> HTTPResponse:
        logger.error(f"Failed to serve {request.path}: {error}", exc_info=error)
        return internal_error()


class StaticServer:
    """
    Handler for a pre-compressed asset tree.

    Build one with ``file_server()`` or ``StaticServerBuilder``; the index
    is computed by then and never changes, so a single instance can be
    shared by all worker threads.
    """

    def __init__(
        self,
        fs: ReadDirFS,
        index: Mapping[str, FileInfo],
        encodings: Sequence[Encoding],
        error_handler: ErrorHandler,
    ):
        self.fs = fs
        self.index = index
        self.encodings = tuple(encodings)
        self.error_handler = error_handler

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)

    def _resolve(self, request: HTTPRequest) -> Optional[Resolution]:
        path = request.path.removeprefix("/")
        return negotiate(
            self.index,
            self.encodings,
            path,
            request.get_header("accept-encoding"),
        )

    def has_asset(self, request: HTTPRequest) -> bool:
        """
        Would this request resolve to a stored asset?

        Pure lookup: no I/O and no response is produced, so callers can
        decide between this handler and a fallback without double-writing.
        """
        return self._resolve(request) is not None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Serve a GET/HEAD request for an asset."""
        if request.method not in ALLOWED_METHODS:
            return method_not_allowed(ALLOWED_METHODS, METHOD_NOT_ALLOWED_MESSAGE)

        resolution = self._resolve(request)
        if resolution is None:
            return not_found()

        logger.debug(
            f"{request.method} {request.path} -> {resolution.stored_path} "
            f"({resolution.content_encoding or 'identity'}, etag {resolution.etag})"
        )
        return self._serve(request, resolution)

    # =========================================================================
    # RESPONSE WRITER
    # =========================================================================

    def _open(self, resolution: Resolution) -> BinaryIO:
        if resolution.info.content is not None:
            return io.BytesIO(resolution.info.content)
        return self.fs.open(resolution.stored_path)

    def _serve(self, request: HTTPRequest, resolution: Resolution) -> HTTPResponse:
        if request.get_header("if-none-match") == resolution.etag:
            return not_modified()

        response = HTTPResponse(status=HTTPStatus.OK)
        response.set_header("Content-Type", get_content_type(resolution.path))
        response.set_header("ETag", resolution.etag)

        if resolution.content_encoding:
            response.set_header("Content-Encoding", resolution.content_encoding)

        if resolution.varies:
            response.set_header("Vary", "Accept-Encoding")

        try:
            stream = self._open(resolution)
        except OSError as e:
            return self.error_handler.handle_failure(response, request, e)

        with ExitStack() as stack:
            stack.callback(stream.close)

            if resolution.content_length > 0:
                response.set_header("Content-Length", str(resolution.content_length))

            if request.is_head:
                return response

            if resolution.decoder is not None:
                try:
                    stream = resolution.decoder(stream)
                except Exception as e:
                    # The body would not be what the ETag describes.
                    response.del_header("ETag")
                    return self.error_handler.handle_failure(response, request, e)
                stack.callback(stream.close)

            try:
                if resolution.decoder is None and stream.seekable():
                    return serve_content(response, request, stream)

                body = io.BytesIO()
                shutil.copyfileobj(stream, body)
                response.body = body.getvalue()
            except Exception as e:
                return self.error_handler.handle_failure(response, request, e)

        return response


# =============================================================================
# BUILDER AND OPTIONS
# =============================================================================

class StaticServerBuilder:
    """
    Collects settings, then builds a StaticServer (and its index) once.

        static = (StaticServerBuilder()
            .add_encoding(brotli_encoding(), prepend=True)
            .encode_on_init()
            .build(DirectoryFS("public")))

    Starts with gzip as the only codec and InternalErrorHandler.
    """

    def __init__(self):
        self._encodings: list[Encoding] = [gzip_encoding()]
        self._error_handler: ErrorHandler = InternalErrorHandler()
        self._encode_on_init = False

    @property
    def encodings(self) -> tuple[Encoding, ...]:
        return tuple(self._encodings)

    def add_encoding(self, encoding: Encoding, prepend: bool = False) -> "StaticServerBuilder":
        """Register a codec; prepending gives it negotiation priority."""
        if prepend:
            self._encodings.insert(0, encoding)
        else:
            self._encodings.append(encoding)
        return self

    def on_error(self, handler: ErrorHandler) -> "StaticServerBuilder":
        self._error_handler = handler
        return self

    def encode_on_init(self, enabled: bool = True) -> "StaticServerBuilder":
        """Compress originals lacking a sidecar while building the index."""
        self._encode_on_init = enabled
        return self

    def build(self, fs: ReadDirFS) -> StaticServer:
        """
        Index the tree and return the handler.

        Raises:
            IndexBuildError: The tree could not be fully read.
        """
        index = IndexBuilder(fs, self._encodings, self._encode_on_init).build()
        return StaticServer(fs, index, self._encodings, self._error_handler)


Option = Callable[[StaticServerBuilder], None]


def on_error(handler: ErrorHandler) -> Option:
    """Option: replace the default 500 error handler."""
    def option(builder: StaticServerBuilder) -> None:
        builder.on_error(handler)
    return option


def encode_on_init(builder: StaticServerBuilder) -> None:
    """Option: pre-compress originals that have no sidecar."""
    builder.encode_on_init()


def file_server(fs: ReadDirFS, *options: Option) -> StaticServer:
    """
    Create a StaticServer for ``fs``, applying options in order.

    Example:
        static = file_server(DirectoryFS("public"), brotli_encoding.add_encoding)
    """
    builder = StaticServerBuilder()
    for option in options:
        option(builder)
    return builder.build(fs)
