"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows about the HTTP wire format, and nothing about
assets:

    request.py       bytes → HTTPRequest
    response.py      HTTPResponse / ResponseBuilder → bytes
    status_codes.py  HTTPStatus enum with reason phrases
    mime_types.py    extension → Content-Type
    content.py       Range / If-Match / If-Range for seekable streams

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    not_modified,
    not_found,
    method_not_allowed,
    internal_error,
)
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type
from .content import serve_content

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "error_response",
    "not_modified",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "HTTPStatus",
    "get_mime_type",
    "get_content_type",
    "serve_content",
]
