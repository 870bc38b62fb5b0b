"""
Fallback composition for asset handlers.

Single-page applications route on the client: "/settings/profile" is not
a file, the browser should get index.html and let JavaScript take over.
``StaticServer.has_asset`` answers "is this a real asset?" without
producing a response, so the choice is made before anything is written.

    GET /app.js            → asset exists  → StaticServer
    GET /settings/profile  → no asset      → fallback (index.html)
"""

import logging
from typing import Callable

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .static import StaticServer


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


class FallbackHandler:
    """Serve assets that exist; hand everything else to ``fallback``."""

    def __init__(self, static: StaticServer, fallback: Handler):
        self.static = static
        self.fallback = fallback

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        if self.static.has_asset(request):
            return self.static.handle(request)

        logger.debug(f"No asset for {request.path}, using fallback")
        return self.fallback(request)


def spa_fallback(static: StaticServer, index_path: str = "index.html") -> FallbackHandler:
    """
    Serve ``index_path`` for every path that is not an asset.

    The index is served through the same negotiation, so a stored
    "index.html.gz" is still used for gzip-capable clients.
    """
    entry_point = "/" + index_path.lstrip("/")

    def serve_index(request: HTTPRequest) -> HTTPResponse:
        return static.handle(request.with_path(entry_point))

    return FallbackHandler(static, serve_index)
