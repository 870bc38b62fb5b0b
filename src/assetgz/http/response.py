"""
=============================================================================
HTTP RESPONSES
=============================================================================

HTTPResponse is the value every handler returns; ResponseBuilder is the
fluent way to make one.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                 A COMPRESSED ASSET RESPONSE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 200 OK                                                   │
    │   Content-Type: text/javascript; charset=utf-8   ← from "app.js"    │
    │   ETag: 3b88egjdndqox                            ← content hash     │
    │   Content-Encoding: br                           ← sidecar codec    │
    │   Vary: Accept-Encoding                          ← caches, beware   │
    │   Content-Length: 2548                           ← sidecar size     │
    │   Accept-Ranges: bytes                                              │
    │                                                                      │
    │   <2548 bytes of app.js.br, untouched>                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Handlers set Content-Length themselves when they know it. to_bytes()
only fills it in when it's missing and a body is actually sent.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Header names are stored as given; use the canonical spelling
    ("Content-Type", "ETag", ...). ``get_header`` and ``del_header`` match
    case-insensitively.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.del_header(name)
        self.headers[name] = value
        return self

    def get_header(self, name: str, default: str = "") -> str:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def del_header(self, name: str) -> "HTTPResponse":
        lowered = name.lower()
        for key in [key for key in self.headers if key.lower() == lowered]:
            del self.headers[key]
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def to_bytes(self, server_name: str = "assetgz", include_body: bool = True) -> bytes:
        """
        Serialize for socket.sendall().

        Args:
            server_name: Value for the Server header.
            include_body: False for HEAD requests: headers only, and no
                Content-Length is invented for them.
        """
        response_headers = dict(self.headers)
        has_length = any(name.lower() == "content-length" for name in response_headers)

        if not has_length and include_body and self.status != HTTPStatus.NOT_MODIFIED:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return header_bytes + (self.body if include_body else b"")


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .text("404 page not found\\n")
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        self._headers["X-Content-Type-Options"] = "nosniff"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an HTTP-date (RFC 7231).

        >>> format_http_date(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))
        'Thu, 01 Jan 2026 12:00:00 GMT'
    """
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# Fixed responses for the outcomes that never touch an asset.
#
# =============================================================================

def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """Plain-text error with the reason phrase as default body."""
    return (ResponseBuilder()
        .status(status)
        .text((message or status.phrase) + "\n")
        .build())


def not_modified() -> HTTPResponse:
    """304 with no body and no validator headers."""
    return HTTPResponse(status=HTTPStatus.NOT_MODIFIED)


def not_found() -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, "404 page not found")


def method_not_allowed(allowed_methods: list[str], message: str) -> HTTPResponse:
    """405 with the Allow header (RFC 7231 requires it)."""
    response = error_response(HTTPStatus.METHOD_NOT_ALLOWED, message)
    response.set_header("Allow", ", ".join(allowed_methods))
    return response


def internal_error() -> HTTPResponse:
    """Opaque 500: never leak error details to the client."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)
