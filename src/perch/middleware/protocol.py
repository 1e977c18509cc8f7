"""Middleware protocol and Next type alias.

A middleware is any callable matching::

    async def my_mw(request: Request, next: Next) -> AnyResponse: ...

No base class required. The framework checks the shape, not the lineage.

``next`` may return a ``Response`` or a ``WebSocketUpgrade``. Both share
the ``.with_header()`` / ``.with_status()`` chainable API, so middleware
can treat them uniformly.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from perch.http.request import Request
from perch.server.negotiation import AnyResponse

# The next handler in the middleware chain
type Next = Callable[[Request], Awaitable[AnyResponse]]


class Middleware(Protocol):
    """Protocol for perch middleware.

    Accepts both functions and callable objects::

        async def timing(request: Request, next: Next) -> AnyResponse:
            start = time.monotonic()
            response = await next(request)
            return response.with_header("X-Time", f"{time.monotonic() - start:.3f}")
    """

    async def __call__(self, request: Request, next: Next) -> AnyResponse: ...
