"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting request processing, chained around the application's
dispatch function (Chain of Responsibility).

    base.py     Middleware, MiddlewarePipeline
    logging.py  LoggingMiddleware (access log, X-Request-ID)

=============================================================================
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
