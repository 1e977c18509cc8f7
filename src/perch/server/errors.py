"""Error responses for the request pipeline.

Maps HTTPError exceptions and unexpected failures to plain-text
Response objects. Nothing raised by a handler escapes the request.
"""

import logging

from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response

logger = logging.getLogger("perch.server")


def handle_http_error(exc: HTTPError, request: Request) -> Response:
    """Render an HTTPError as a response carrying its status and detail."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
    response = Response.error(exc.detail or f"Error {exc.status}", exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


def handle_internal_error(exc: Exception, request: Request, *, debug: bool = False) -> Response:
    """Log an unexpected exception and render a generic 500."""
    logger.exception("500 %s %s", request.method, request.path)
    body = "Internal Server Error"
    if debug:
        body = f"{body}\n\n{type(exc).__name__}: {exc}"
    return Response.error(body, 500)
