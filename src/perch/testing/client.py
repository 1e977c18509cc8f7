"""Async test client for perch applications.

Drives the ASGI callable in-process and returns the same ``Response``
type used in production. No HTTP involved.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from typing import Any

from perch.app import App
from perch.http.response import Response
from perch.testing.websocket import WebSocketSession

type FileSpec = tuple[str, bytes, str]


def encode_form(
    form: Mapping[str, str] | None = None,
    files: Mapping[str, FileSpec] | None = None,
) -> tuple[bytes, str]:
    """Encode form fields (and optional files) as a request body.

    Without files the body is URL-encoded; with files it is
    ``multipart/form-data``. Returns ``(body, content_type)``. Encoding
    is delegated to httpx so bodies match what a real client sends.
    """
    import httpx

    request = httpx.Request(
        "POST",
        "http://testserver/",
        data=dict(form or {}),
        files=dict(files) if files else None,
    )
    content_type = request.headers.get("content-type", "application/x-www-form-urlencoded")
    return request.read(), content_type


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Async test client for perch applications.

    Usage::

        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.status == 200

            async with client.websocket("/websocket") as ws:
                assert await ws.receive_text() == "Hello from Workers!"
    """

    __slots__ = ("app",)

    def __init__(self, app: App) -> None:
        self.app = app

    async def __aenter__(self) -> TestClient:
        self.app._ensure_frozen()
        await self.app.startup()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.app.shutdown()

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        """Send a GET request."""
        return await self.request("GET", path, headers=headers)

    async def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        form: Mapping[str, str] | None = None,
        files: Mapping[str, FileSpec] | None = None,
        json: Any = None,
    ) -> Response:
        """Send a POST request.

        ``form``/``files`` build a form body (multipart when files are
        given); ``json`` builds a JSON body. Explicit ``headers`` win.
        """
        extra_headers: dict[str, str] = {}
        request_body = body or b""

        if form is not None or files is not None:
            request_body, content_type = encode_form(form, files)
            extra_headers["content-type"] = content_type
        elif json is not None:
            request_body = json_module.dumps(json).encode("utf-8")
            extra_headers["content-type"] = "application/json"

        merged = {**extra_headers, **(headers or {})}
        return await self.request("POST", path, headers=merged, body=request_body)

    def websocket(self, path: str, *, headers: dict[str, str] | None = None) -> WebSocketSession:
        """Open a WebSocket session; use as ``async with``."""
        return WebSocketSession(self.app, path, headers=headers)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Response:
        """Send an arbitrary request through the ASGI app."""
        path_part, _, query_string = path.partition("?")

        raw_headers: list[tuple[bytes, bytes]] = []
        for name, value in (headers or {}).items():
            raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

        scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "scheme": "http",
            "path": path_part,
            "raw_path": path_part.encode("latin-1"),
            "query_string": query_string.encode("latin-1"),
            "root_path": "",
            "headers": raw_headers,
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 0),
        }

        request_body = body or b""
        body_sent = False

        async def receive() -> dict[str, Any]:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": request_body, "more_body": False}
            return {"type": "http.disconnect"}

        response_status = 200
        response_headers: list[tuple[bytes, bytes]] = []
        response_body_parts: list[bytes] = []

        async def send(message: dict[str, Any]) -> None:
            nonlocal response_status, response_headers
            if message["type"] == "http.response.start":
                response_status = message["status"]
                response_headers = list(message.get("headers", []))
            elif message["type"] == "http.response.body":
                response_body_parts.append(message.get("body", b""))

        await self.app(scope, receive, send)

        content_type = "text/plain; charset=utf-8"
        extra_headers: list[tuple[str, str]] = []
        for name_b, value_b in response_headers:
            name_str = name_b.decode("latin-1")
            value_str = value_b.decode("latin-1")
            if name_str == "content-type":
                content_type = value_str
            elif name_str != "content-length":
                extra_headers.append((name_str, value_str))

        return Response(
            body=b"".join(response_body_parts),
            status=response_status,
            content_type=content_type,
            headers=tuple(extra_headers),
        )
