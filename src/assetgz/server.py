"""
=============================================================================
ASSET SERVER
=============================================================================

Wires the pieces together into a running HTTP/1.1 server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ──accept──► ThreadPoolExecutor ──► _process_connection│
    │                                                        │             │
    │                                   ┌────────────────────┘             │
    │                                   ▼                                  │
    │             read_request ─► RequestParser ─► middleware ─► handler   │
    │                                   ▲                          │       │
    │                                   └──── keep-alive loop ◄────┘       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The handler is any ``(HTTPRequest) -> HTTPResponse`` callable; normally a
StaticServer, optionally behind an SPA fallback. ``create_app`` builds
that handler from a ServerConfig.

=============================================================================
USAGE
=============================================================================

    server = create_app(ServerConfig(root_dir="public", brotli=True))
    server.run()          # blocks until SIGINT/SIGTERM

=============================================================================
"""

import logging
import os
import zipfile
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from .config import ServerConfig
from .core import SocketServer, Connection
from .filesystem import DirectoryFS, ReadDirFS, ZipFS
from .handlers import encode_on_init, file_server, spa_fallback
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus,
    error_response, internal_error,
)
from .middleware import LoggingMiddleware, Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


class HTTPServer:
    """
    Threaded HTTP/1.1 server around a single handler.

        server = HTTPServer(static, config)
        server.use(LoggingMiddleware())
        server.run()
    """

    def __init__(self, handler: Handler, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._middleware = MiddlewarePipeline()
        self._app = handler
        self._handler: Optional[Handler] = None
        self._running = False

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware; first added is outermost."""
        self._middleware.add(middleware)
        return self

    @property
    def address(self) -> tuple[str, int]:
        return self._socket_server.address

    def run(self):
        """Start serving. Blocks until shutdown() or a signal."""
        self._running = True
        self._handler = self._middleware.wrap(self._app)
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.workers,
            thread_name_prefix="assetgz-worker",
        )

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{self.config.port} "
            f"({self.config.workers} workers)"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask a running server to stop (any thread)."""
        self._socket_server.shutdown()

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        logger.info("Server stopped")

    def _handle_connection(self, conn: Connection):
        try:
            self._executor.submit(self._process_connection, conn)
        except RuntimeError:
            # Executor already shut down.
            logger.warning(f"[{conn.id}] Server stopping, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server shutting down")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        self._send_error(conn, HTTPStatus(e.status_code), str(e))
                        break

                    try:
                        response = self._handler(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = internal_error()

                    keep_alive = request.is_keep_alive and self.config.keep_alive
                    if keep_alive:
                        response.set_header("Connection", "keep-alive")
                        response.set_header(
                            "Keep-Alive",
                            f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.set_header("Connection", "close")

                    response_bytes = response.to_bytes(
                        self.config.server_name,
                        include_body=not request.is_head,
                    )

                    if not conn.send_response(response_bytes):
                        break

                    if not keep_alive:
                        break

                    conn.set_keep_alive()

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

                except ValueError as e:
                    logger.warning(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, "Request too large")
                    break

                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Answer errors that happen before a handler runs."""
        response = error_response(status, message)
        response.set_header("Connection", "close")
        conn.send_response(response.to_bytes(self.config.server_name))


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def setup_logging(config: ServerConfig):
    """Root logging from config; the access log inherits it."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("assetgz").setLevel(level)


def open_filesystem(root: str) -> ReadDirFS:
    """A directory, or a .zip archive served as a tree."""
    if os.path.isfile(root) and zipfile.is_zipfile(root):
        return ZipFS(root)
    if not os.path.isdir(root):
        raise FileNotFoundError(f"Asset root not found: {root}")
    return DirectoryFS(root)


def build_handler(config: ServerConfig, fs: Optional[ReadDirFS] = None) -> Handler:
    """
    The request handler described by ``config``.

    Raises:
        IndexBuildError: The asset tree could not be indexed.
    """
    if fs is None:
        if not config.root_dir:
            raise ValueError("root_dir is required")
        fs = open_filesystem(config.root_dir)

    options = []
    if config.brotli:
        # Optional dependency, only needed when enabled.
        from . import brotli_encoding
        options.append(brotli_encoding.add_encoding)
    if config.encode_on_init:
        options.append(encode_on_init)

    static = file_server(fs, *options)
    logger.info(f"Serving {len(static.index)} indexed files from {config.root_dir}")

    if config.spa_index:
        return spa_fallback(static, config.spa_index)
    return static


def create_app(config: Optional[ServerConfig] = None, fs: Optional[ReadDirFS] = None) -> HTTPServer:
    """
    Build a ready-to-run server: handler from config, access log first.

        app = create_app(ServerConfig(root_dir="dist", spa_index="index.html"))
        app.run()
    """
    config = config or ServerConfig.from_env()
    config.validate()

    server = HTTPServer(build_handler(config, fs), config)
    server.use(LoggingMiddleware(log_format=config.log_format))
    return server
