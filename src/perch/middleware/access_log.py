"""Request logging middleware.

Logs every request before it reaches the router, with the edge
metadata the proxy forwards (coordinates and region), then the status
and elapsed time once the response is ready.
"""

import logging
import time
from datetime import UTC, datetime

from perch.http.request import Request
from perch.middleware.protocol import Next
from perch.server.negotiation import AnyResponse


class RequestLogMiddleware:
    """Log one line per request.

    Usage::

        app.add_middleware(RequestLogMiddleware())

    Output (INFO)::

        2026-10-19T12:00:00+00:00 - [/form/email], located at: (51.5, -0.1), within: GB
    """

    __slots__ = ("logger",)

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("perch.access")

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        self.logger.info(
            "%s - [%s], located at: %s, within: %s",
            datetime.now(UTC).isoformat(timespec="seconds"),
            request.path,
            request.coordinates,
            request.region,
        )
        start = time.perf_counter()
        response = await next(request)
        self.logger.debug(
            "%s %s -> %d in %.1fms",
            request.method,
            request.path,
            response.status,
            (time.perf_counter() - start) * 1000,
        )
        return response
