"""Immutable HTTP request.

Frozen metadata with async body access. The request is honest about
what it is: received data that doesn't change.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from perch._internal.asgi import Receive, Scope, raw_headers
from perch.errors import PayloadTooLarge
from perch.http.headers import Headers

if TYPE_CHECKING:
    from perch.http.forms import FormData

UNKNOWN_REGION = "unknown region"


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers) is frozen at creation. The body is
    read lazily through ``.body()``, ``.text()`` and ``.form()`` and
    cached, so middleware and handlers can both read it.

    WebSocket handshakes are represented as ``GET`` requests with
    ``scheme`` set to ``ws`` or ``wss``.
    """

    method: str
    path: str
    headers: Headers
    path_params: dict[str, str]
    http_version: str
    scheme: str
    client: tuple[str, int] | None

    # Private: ASGI receive callable for body streaming
    _receive: Receive
    _max_body: int | None = None

    # Private: mutable cache for body and parsed form data
    # (dict contents are mutable even though the field reference is frozen)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def is_websocket(self) -> bool:
        """True if this request is a WebSocket handshake."""
        return self.scheme in ("ws", "wss")

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def region(self) -> str:
        """Edge region the request arrived through, if the proxy reported one."""
        return (
            self.headers.get("cf-region")
            or self.headers.get("cf-ipcountry")
            or UNKNOWN_REGION
        )

    @property
    def coordinates(self) -> tuple[float, float]:
        """(latitude, longitude) reported by the edge proxy, or ``(0.0, 0.0)``."""
        try:
            lat = float(self.headers.get("cf-latitude", ""))
            lon = float(self.headers.get("cf-longitude", ""))
        except ValueError:
            return (0.0, 0.0)
        return (lat, lon)

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        Result is cached: the ASGI receive is consumed once, then
        the same bytes are returned on subsequent calls.

        Raises ``PayloadTooLarge`` once more than ``_max_body`` bytes
        have arrived.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks: list[bytes] = []
        size = 0
        async for chunk in self.stream():
            size += len(chunk)
            if self._max_body is not None and size > self._max_body:
                raise PayloadTooLarge(self._max_body)
            chunks.append(chunk)
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    async def form(self) -> FormData:
        """Parse the body as form data (URL-encoded or multipart).

        Result is cached. A missing Content-Type is treated as
        URL-encoded.

        Raises:
            FormDecodeError: If the Content-Type is not a form encoding
                or the body cannot be parsed.
        """
        if "_form" in self._cache:
            return self._cache["_form"]

        from perch.http.forms import parse_form_data

        ct = self.content_type or "application/x-www-form-urlencoded"
        raw = await self.body()
        result = parse_form_data(raw, ct)
        self._cache["_form"] = result
        return result

    # -- Factory --

    def with_params(self, path_params: dict[str, str]) -> Request:
        """Return a copy carrying *path_params*, sharing the body cache."""
        return replace(self, path_params=path_params)

    @classmethod
    def from_asgi(
        cls,
        scope: Scope,
        receive: Receive,
        *,
        max_body: int | None = None,
    ) -> Request:
        """Create a Request from an ASGI http or websocket scope."""
        client = scope.get("client")
        default_scheme = "ws" if scope["type"] == "websocket" else "http"
        return cls(
            method=scope.get("method", "GET").upper(),
            path=scope["path"],
            headers=Headers(raw_headers(scope.get("headers"))),
            path_params={},
            http_version=scope.get("http_version", "1.1"),
            scheme=scope.get("scheme", default_scheme),
            client=tuple(client) if client else None,
            _receive=receive,
            _max_body=max_body,
        )
