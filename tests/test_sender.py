"""Tests for ASGI response sending and error rendering."""

from typing import Any

import pytest

from perch.errors import NotFound, UpgradeRequired
from perch.http.headers import Headers
from perch.http.request import Request
from perch.http.response import Response
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.sender import send_response


async def _collect(response: Response) -> list[dict[str, Any]]:
    sent: list[dict[str, Any]] = []

    async def send(message: dict[str, Any]) -> None:
        sent.append(message)

    await send_response(response, send)
    return sent


async def _no_body() -> dict[str, Any]:
    return {"type": "http.request", "body": b""}


def _request() -> Request:
    return Request.from_asgi({"type": "http", "method": "GET", "path": "/x"}, _no_body)


class TestSendResponse:
    async def test_start_and_body(self) -> None:
        start, body = await _collect(Response("hello").with_header("X-Edge", "1"))
        assert start["type"] == "http.response.start"
        assert start["status"] == 200
        assert (b"content-type", b"text/plain; charset=utf-8") in start["headers"]
        assert (b"x-edge", b"1") in start["headers"]
        assert (b"content-length", b"5") in start["headers"]
        assert body == {"type": "http.response.body", "body": b"hello"}

    async def test_no_body_for_204(self) -> None:
        start, body = await _collect(Response("ignored", status=204))
        assert (b"content-length", b"0") in start["headers"]
        assert body["body"] == b""


class TestErrorRendering:
    def test_http_error(self) -> None:
        response = handle_http_error(NotFound(), _request())
        assert response.status == 404
        assert response.text == "Not Found"

    def test_http_error_headers(self) -> None:
        response = handle_http_error(UpgradeRequired(), _request())
        assert response.status == 426
        assert ("Upgrade", "websocket") in response.headers

    def test_internal_error_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("ERROR", logger="perch.server"):
            response = handle_internal_error(RuntimeError("boom"), _request())
        assert response.status == 500
        assert response.text == "Internal Server Error"
        assert any("500 GET /x" in r.message for r in caplog.records)


class TestHeaders:
    def test_case_insensitive(self) -> None:
        headers = Headers(((b"Content-Type", b"text/plain"),))
        assert headers["CONTENT-TYPE"] == "text/plain"
        assert "content-type" in headers
        assert 42 not in headers

    def test_repeated(self) -> None:
        headers = Headers(((b"accept", b"a"), (b"Accept", b"b")))
        assert headers["accept"] == "a"
        assert headers.get_list("accept") == ["a", "b"]
        assert len(headers) == 1
        assert list(headers) == ["accept"]

    def test_missing(self) -> None:
        headers = Headers()
        assert headers.get("x-missing") is None
        with pytest.raises(KeyError):
            headers["x-missing"]
