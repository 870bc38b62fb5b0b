"""
Middleware wrapped around the asset handler.

    from assetgz.middleware import MiddlewarePipeline, LoggingMiddleware

    handler = MiddlewarePipeline().add(LoggingMiddleware()).wrap(static)
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
