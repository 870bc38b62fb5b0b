"""
=============================================================================
REQUEST HANDLERS
=============================================================================

A handler is any callable ``(HTTPRequest) -> HTTPResponse``.

    StaticServer      Pre-compressed asset tree (GET/HEAD only)
    FallbackHandler   Asset if it exists, another handler otherwise
    spa_fallback      FallbackHandler that serves an SPA entry point

=============================================================================
"""

from .static import (
    ErrorHandler,
    InternalErrorHandler,
    StaticServer,
    StaticServerBuilder,
    encode_on_init,
    file_server,
    on_error,
)
from .spa import FallbackHandler, spa_fallback

__all__ = [
    "ErrorHandler",
    "InternalErrorHandler",
    "StaticServer",
    "StaticServerBuilder",
    "encode_on_init",
    "file_server",
    "on_error",
    "FallbackHandler",
    "spa_fallback",
]
