"""
pytest configuration and fixtures.
"""

import gzip
import socket
import threading
import zipfile
from pathlib import Path
from typing import Callable, Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from assetgz import DirectoryFS, HTTPServer, ServerConfig, file_server
from assetgz.http import HTTPRequest


A_TXT = b"hello, world\n"
B_BIN = b"\x00\x01binary payload\xff" * 64
INDEX_HTML = b"<!doctype html><title>app</title>\n"
SITE_CSS = b"body { margin: 0; }\n"


def gzip_bytes(data: bytes) -> bytes:
    return gzip.compress(data, mtime=0)


def write_corrupt_zip(path: Path) -> Path:
    """Zip archive whose only member fails its CRC check when read."""
    payload = b"original payload of the member\n"
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as zf:
        zf.writestr("app.js", payload)

    raw = path.read_bytes()
    path.write_bytes(raw.replace(payload, payload.upper()))
    return path


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request for an asset."""
    return (
        b"GET /css/site.css?v=3 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept-Encoding: gzip, deflate, br\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def asset_dir(tmp_path: Path) -> Path:
    """
    A small asset tree:

        a.txt, a.txt.gz     original plus gzip sidecar
        b.bin.gz            sidecar only
        bad.png.gz          sidecar that is not gzip at all
        index.html
        css/site.css
    """
    root = tmp_path / "public"
    root.mkdir()

    (root / "a.txt").write_bytes(A_TXT)
    (root / "a.txt.gz").write_bytes(gzip_bytes(A_TXT))
    (root / "b.bin.gz").write_bytes(gzip_bytes(B_BIN))
    (root / "bad.png.gz").write_bytes(b"this is not gzip data")
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "css").mkdir()
    (root / "css" / "site.css").write_bytes(SITE_CSS)

    return root


@pytest.fixture
def fs(asset_dir: Path) -> DirectoryFS:
    return DirectoryFS(asset_dir)


@pytest.fixture
def static(fs: DirectoryFS):
    """StaticServer with default options (gzip only, 500 on errors)."""
    return file_server(fs)


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
    """
    Build an HTTPRequest without going through the parser.

        make_request("/a.txt", accept_encoding="gzip")
    """
    def factory(path: str, method: str = "GET", **headers: str) -> HTTPRequest:
        return HTTPRequest(
            method=method,
            path=path,
            headers={name.replace("_", "-").lower(): value for name, value in headers.items()},
            client_address=("127.0.0.1", 54321),
        )
    return factory


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        """Send one raw request on a fresh connection, read until close."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                chunk = sock.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def test_server(static) -> Generator[TestServer, None, None]:
    """The asset handler behind a real socket, on an OS-picked port."""
    server = HTTPServer(static, ServerConfig(
        host="127.0.0.1",
        port=0,
        workers=2,
        timeout=5.0,
        log_level="WARNING",
    ))

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()
