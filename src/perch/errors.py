"""Perch exception hierarchy.

Shared across Router, App, the ASGI handler, and middleware so every
module raises and catches the same types. Every failure is contained at
the granularity of one request or one connection.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when a route pattern or app configuration is invalid.

    Surfaces at registration or freeze time, never while serving.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, middleware, or handlers. ``Router.dispatch``
    converts it into a plain-text response carrying ``detail``.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request method and path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class BadRequest(HTTPError):  # noqa: N818
    """400: required request data is missing or could not be decoded."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class UnprocessableEntity(HTTPError):  # noqa: N818
    """422: request data is present but of the wrong kind."""

    def __init__(self, detail: str = "Unprocessable Entity") -> None:
        super().__init__(status=422, detail=detail)


class PayloadTooLarge(HTTPError):  # noqa: N818
    """413: the request body exceeds ``AppConfig.max_content_length``."""

    def __init__(self, limit: int) -> None:
        super().__init__(status=413, detail=f"Request body exceeds {limit} bytes")


class UpgradeRequired(HTTPError):  # noqa: N818
    """426: a WebSocket route was requested over plain HTTP."""

    def __init__(self, detail: str = "Expected a WebSocket upgrade") -> None:
        super().__init__(
            status=426,
            detail=detail,
            headers=(("Upgrade", "websocket"), ("Connection", "Upgrade")),
        )


class UpstreamFailure(PerchError):
    """A dependency of a handler failed (form decoder, bindings, upgrade).

    Always rendered as a generic 500; the message is logged, never sent.
    """


class MissingBinding(UpstreamFailure):
    """An environment binding requested by a handler is not configured."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Binding {name!r} is not configured")


class TransportFault(PerchError):
    """A WebSocket event was malformed or the transport reported a failure.

    Fatal to the relay loop of that one connection only.
    """
