"""Echo relay: the per-connection loop behind ``/websocket``.

Each accepted connection gets its own ``EchoRelay.run()`` task, spawned
by a ``ConnectionTracker``. The task greets the peer once, echoes every
text frame back in delivery order, ignores binary frames, and stops on
the first ``Close`` or transport fault. Completion is reported through
the task's future, not through callbacks on the connection.
"""

import asyncio
import contextlib
import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from perch._internal.invoke import invoke
from perch.errors import TransportFault
from perch.realtime.websocket import Close, Connection, Message

logger = logging.getLogger("perch.relay")

DEFAULT_GREETING = "Hello from Workers!"


class RelayState(Enum):
    OPEN = "open"
    CLOSED = "closed"


class RelayOutcome(Enum):
    """How a relay task finished."""

    CLOSED = "closed"  # peer sent Close
    ENDED = "ended"  # event stream ran out without a Close
    FAULTED = "faulted"  # transport fault; the transport finalises the socket


type CloseHook = Callable[[Close], Awaitable[None] | None]


class EchoRelay:
    """Echo text frames back to the sender.

    Usage::

        @app.get("/websocket")
        def websocket(request, params):
            return WebSocketUpgrade(EchoRelay())

    ``on_close`` is called once with the ``Close`` event, before the loop
    exits. It defaults to doing nothing.
    """

    __slots__ = ("greeting", "on_close")

    def __init__(self, greeting: str = DEFAULT_GREETING, *, on_close: CloseHook | None = None) -> None:
        self.greeting = greeting
        self.on_close = on_close

    async def __call__(self, connection: Connection) -> RelayOutcome:
        return await self.run(connection)

    async def run(self, connection: Connection) -> RelayOutcome:
        """Serve *connection* until it closes or faults."""
        state = RelayState.OPEN
        try:
            await connection.accept()
            await connection.send_text(self.greeting)
            async with contextlib.aclosing(connection.events()) as events:
                async for event in events:
                    match event:
                        case Message(data=str() as text):
                            logger.debug("echo %r", text)
                            await connection.send_text(text)
                        case Message():
                            # Binary frames are not relayed.
                            continue
                        case Close():
                            state = RelayState.CLOSED
                            if self.on_close is not None:
                                await invoke(self.on_close, event)
                            break
        except TransportFault as exc:
            logger.warning("relay stopped: %s", exc)
            return RelayOutcome.FAULTED

        if state is RelayState.CLOSED:
            return RelayOutcome.CLOSED
        return RelayOutcome.ENDED


class ConnectionTracker:
    """Owns running relay tasks and tallies how they finished.

    One tracker per app. It never touches a connection itself; each
    relay task owns its connection exclusively.
    """

    __slots__ = ("_tasks", "outcomes")

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self.outcomes: Counter[Any] = Counter()

    @property
    def active(self) -> int:
        """Number of relays still running."""
        return len(self._tasks)

    def spawn(self, relay: Callable[[Any], Awaitable[Any]], connection: Any) -> asyncio.Task[Any]:
        """Start *relay* on *connection* as an independent task.

        The returned task resolves to whatever the relay returns
        (a ``RelayOutcome`` for ``EchoRelay``).
        """
        task = asyncio.create_task(invoke(relay, connection))
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        logger.debug("relay started (%d active)", len(self._tasks))
        return task

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.info("relay cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error("relay crashed", exc_info=exc)
            return
        self.outcomes[task.result()] += 1
        logger.debug("relay finished: %s", task.result())

    async def wait_closed(self) -> None:
        """Wait for every running relay to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
