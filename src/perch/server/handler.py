"""ASGI handler: translates ASGI scope/messages to perch types.

The only component that touches raw ASGI directly besides the WebSocket
handle. Converts scope dicts to typed Request objects, runs middleware
(outermost first) around ``Router.dispatch``, and sends the result back
through ASGI send() or hands the connection to a relay task.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from perch._internal.asgi import Message, Receive, Scope, Send
from perch.config import AppConfig
from perch.errors import HTTPError, UpgradeRequired
from perch.http.request import Request
from perch.middleware.protocol import Next
from perch.realtime.relay import ConnectionTracker
from perch.realtime.websocket import WebSocket, WebSocketUpgrade
from perch.routing.router import Router
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.negotiation import AnyResponse
from perch.server.sender import send_response

logger = logging.getLogger("perch.server")


def build_pipeline(router: Router, middleware: tuple[Callable[..., Any], ...]) -> Next:
    """Wrap middleware around router dispatch; the first middleware runs first."""
    handler: Next = router.dispatch
    for mw in reversed(middleware):

        async def make_next(req: Request, _mw: Any = mw, _next: Next = handler) -> AnyResponse:
            return await _mw(req, _next)

        handler = make_next
    return handler


async def _run(pipeline: Next, request: Request, *, debug: bool) -> AnyResponse:
    """Run the pipeline; errors raised by middleware become responses too."""
    try:
        return await pipeline(request)
    except HTTPError as exc:
        return handle_http_error(exc, request)
    except Exception as exc:
        return handle_internal_error(exc, request, debug=debug)


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    pipeline: Next,
    config: AppConfig,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    request = Request.from_asgi(scope, receive, max_body=config.max_content_length)
    response = await _run(pipeline, request, debug=config.debug)

    if isinstance(response, WebSocketUpgrade):
        response = handle_http_error(UpgradeRequired(), request)

    await send_response(response, send)


async def _no_body() -> Message:
    return {"type": "http.request", "body": b"", "more_body": False}


async def handle_websocket(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    pipeline: Next,
    tracker: ConnectionTracker,
    config: AppConfig,
) -> None:
    """Route a WebSocket handshake and, if upgraded, run its relay.

    The relay runs as its own task owned by *tracker*; this coroutine
    only waits on the task's completion, because the ASGI server closes
    the socket when the app call returns.
    """
    message = await receive()
    if message["type"] != "websocket.connect":
        logger.debug("websocket %s went away before the handshake", scope["path"])
        return

    request = Request.from_asgi(scope, _no_body)
    response = await _run(pipeline, request, debug=config.debug)

    if not isinstance(response, WebSocketUpgrade):
        logger.info("websocket %s denied with %d", request.path, response.status)
        await send({"type": "websocket.close", "code": 1008})
        return

    connection = WebSocket(
        scope,
        receive,
        send,
        max_message_size=config.websocket_max_message_size,
    )
    task = tracker.spawn(response.relay, connection)
    try:
        await asyncio.wait({task})
    except asyncio.CancelledError:
        task.cancel()
        raise
