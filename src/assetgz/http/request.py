"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Parses raw HTTP/1.x request bytes into an HTTPRequest.

An asset server only needs the request line and the headers; GET and
HEAD carry no body. We still read (and discard) a body announced with
Content-Length so that keep-alive connections stay in sync.

    GET /css/app.css?v=3 HTTP/1.1\r\n         ← request line
    Host: example.com\r\n                      ← headers
    Accept-Encoding: gzip, br\r\n
    If-None-Match: 3b88egjdndqox\r\n
    \r\n                                       ← end of headers

Header names are case-insensitive (RFC 7230), so they are stored
lowercase. Repeated headers are folded into one comma-separated value.

=============================================================================
"""

import re
from dataclasses import dataclass, field, replace
from typing import Dict
from urllib.parse import unquote, urlsplit


class HTTPParseError(Exception):
    """Malformed request. Carries the status code to answer with."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method: Upper-case method ("GET", "HEAD", ...).
        path: URL-decoded path without the query string, e.g. "/app.js".
        version: "HTTP/1.1" or "HTTP/1.0".
        headers: Lowercase header name → value.
        query: Raw query string (without "?").
        body: Request body, usually empty.
        client_address: (ip, port) of the peer.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query: str = ""
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps the connection open unless "Connection: close";
        HTTP/1.0 closes it unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"

        return connection == "keep-alive"

    def with_path(self, path: str) -> "HTTPRequest":
        """Copy of this request for a different path (used by fallbacks)."""
        return replace(self, path=path)


class RequestParser:
    """
    Converts raw request bytes to HTTPRequest objects.

    Every syntactically valid method is accepted here; deciding which
    methods a resource supports (405) is the handler's job.
    """

    VALID_METHODS = frozenset({
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    })

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 64 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length") from None

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query=query,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}")

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parsed = urlsplit(uri)
        path = unquote(parsed.path) or "/"

        # Reject ".." segments; legit names like "a..b.txt" are fine.
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..")

        return method, path, parsed.query, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {}

        for line in lines:
            if not line:
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(data: bytes, client_address: tuple[str, int] = ("", 0)) -> HTTPRequest:
    """One-shot helper around RequestParser."""
    return RequestParser().parse(data, client_address)
