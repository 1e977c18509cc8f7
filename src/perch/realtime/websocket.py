"""WebSocket connection handle over the ASGI websocket protocol.

Turns raw ``websocket.*`` messages into a lazy sequence of
``ConnectionEvent`` values and exposes the send side as plain methods.
Handlers never see ASGI messages.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from perch._internal.asgi import Receive, Scope, Send, raw_headers
from perch.errors import TransportFault
from perch.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Message:
    """A data frame. ``data`` is ``str`` for text frames, ``bytes`` for binary."""

    data: str | bytes

    @property
    def text(self) -> str | None:
        """The payload if this is a text frame, else ``None``."""
        return self.data if isinstance(self.data, str) else None


@dataclass(frozen=True, slots=True)
class Close:
    """The peer closed the connection."""

    code: int = 1005
    reason: str = ""


type ConnectionEvent = Message | Close


class Connection(Protocol):
    """What a relay needs from a connection. ``WebSocket`` implements it."""

    async def accept(self) -> None: ...
    async def send_text(self, text: str) -> None: ...
    def events(self) -> AsyncIterator[ConnectionEvent]: ...


class ConnectionState(Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class WebSocket:
    """One accepted (or about to be accepted) WebSocket connection.

    Usage::

        await ws.accept()
        await ws.send_text("hello")
        async for event in ws.events():
            ...

    ``events()`` ends after yielding ``Close``. Transport failures and
    messages the protocol does not allow raise ``TransportFault``.
    """

    __slots__ = ("_max_message_size", "_receive", "_send", "headers", "path", "state")

    def __init__(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        *,
        max_message_size: int | None = None,
    ) -> None:
        self._receive = receive
        self._send = send
        self._max_message_size = max_message_size
        self.path: str = scope["path"]
        self.headers = Headers(raw_headers(scope.get("headers")))
        self.state = ConnectionState.CONNECTING

    async def accept(self) -> None:
        """Complete the handshake. The connect message must already be consumed."""
        if self.state is not ConnectionState.CONNECTING:
            msg = f"Cannot accept a connection that is {self.state.value}."
            raise RuntimeError(msg)
        await self._transmit({"type": "websocket.accept"})
        self.state = ConnectionState.OPEN

    async def send_text(self, text: str) -> None:
        """Send one text frame."""
        self._require_open()
        await self._transmit({"type": "websocket.send", "text": text})

    async def send_bytes(self, data: bytes) -> None:
        """Send one binary frame."""
        self._require_open()
        await self._transmit({"type": "websocket.send", "bytes": data})

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close from the server side. Idempotent."""
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        await self._transmit({"type": "websocket.close", "code": code, "reason": reason})

    async def events(self) -> AsyncIterator[ConnectionEvent]:
        """Yield events in delivery order until the peer closes."""
        while self.state is not ConnectionState.CLOSED:
            try:
                message = await self._receive()
            except Exception as exc:
                msg = f"receive failed on {self.path}: {exc}"
                raise TransportFault(msg) from exc

            kind = message.get("type")
            if kind == "websocket.receive":
                yield self._frame(message)
            elif kind == "websocket.disconnect":
                self.state = ConnectionState.CLOSED
                yield Close(code=message.get("code", 1005), reason=message.get("reason") or "")
                return
            else:
                msg = f"unexpected message {kind!r} on {self.path}"
                raise TransportFault(msg)

    def _frame(self, message: Mapping[str, Any]) -> Message:
        text = message.get("text")
        data = message.get("bytes")
        payload: str | bytes
        if text is not None:
            payload = text
        elif data is not None:
            payload = data
        else:
            msg = f"frame with neither text nor bytes on {self.path}"
            raise TransportFault(msg)
        if self._max_message_size is not None and len(payload) > self._max_message_size:
            msg = f"frame of {len(payload)} exceeds {self._max_message_size} on {self.path}"
            raise TransportFault(msg)
        return Message(payload)

    def _require_open(self) -> None:
        if self.state is not ConnectionState.OPEN:
            msg = f"Cannot send on a connection that is {self.state.value}."
            raise RuntimeError(msg)

    async def _transmit(self, message: dict[str, Any]) -> None:
        try:
            await self._send(message)
        except Exception as exc:
            msg = f"send failed on {self.path}: {exc}"
            raise TransportFault(msg) from exc


type Relay = Callable[[WebSocket], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class WebSocketUpgrade:
    """Returned by a handler to upgrade the request to a WebSocket.

    The ASGI handler hands ``relay`` the connection once the handshake
    is accepted. Provides no-op ``.with_*()`` methods so middleware
    chains don't crash; the handshake headers are fixed by the server.
    """

    relay: Relay
    status: int = 101

    def with_status(self, status: int) -> WebSocketUpgrade:  # noqa: ARG002
        """No-op: an upgrade always answers 101."""
        return self

    def with_header(self, name: str, value: str) -> WebSocketUpgrade:  # noqa: ARG002
        """No-op: handshake headers are owned by the server."""
        return self

    def with_headers(self, headers: Mapping[str, str]) -> WebSocketUpgrade:  # noqa: ARG002
        """No-op: handshake headers are owned by the server."""
        return self

    def with_content_type(self, content_type: str) -> WebSocketUpgrade:  # noqa: ARG002
        """No-op: an upgrade has no body."""
        return self
