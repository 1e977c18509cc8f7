"""Middleware: Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> AnyResponse

Built-in middleware:
    RequestLogMiddleware -- one log line per request with edge metadata
"""

from perch.middleware.access_log import RequestLogMiddleware
from perch.middleware.protocol import Middleware, Next

__all__ = [
    "Middleware",
    "Next",
    "RequestLogMiddleware",
]
