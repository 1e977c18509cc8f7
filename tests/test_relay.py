"""Tests for perch.realtime.relay: the echo loop and the connection tracker."""

import asyncio
from collections.abc import AsyncIterator

from perch.errors import TransportFault
from perch.realtime.relay import ConnectionTracker, EchoRelay, RelayOutcome
from perch.realtime.websocket import Close, ConnectionEvent, Message


class FakeConnection:
    """Replays scripted events and records what the relay sends."""

    def __init__(self, events: list[ConnectionEvent | Exception]) -> None:
        self.script = list(events)
        self.accepted = False
        self.sent: list[str] = []
        self.closed_iterator = False

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, text: str) -> None:
        self.sent.append(text)

    async def events(self) -> AsyncIterator[ConnectionEvent]:
        try:
            while self.script:
                item = self.script.pop(0)
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.closed_iterator = True


class TestEchoRelay:
    async def test_greets_first(self) -> None:
        conn = FakeConnection([])
        await EchoRelay().run(conn)
        assert conn.accepted
        assert conn.sent == ["Hello from Workers!"]

    async def test_custom_greeting(self) -> None:
        conn = FakeConnection([])
        await EchoRelay("hi there").run(conn)
        assert conn.sent == ["hi there"]

    async def test_echoes_text_in_order(self) -> None:
        conn = FakeConnection([Message("ping"), Message("pong"), Message("")])
        await EchoRelay().run(conn)
        assert conn.sent == ["Hello from Workers!", "ping", "pong", ""]

    async def test_ignores_binary(self) -> None:
        conn = FakeConnection([Message(b"\x00"), Message("after")])
        await EchoRelay().run(conn)
        assert conn.sent == ["Hello from Workers!", "after"]

    async def test_close_stops_reading(self) -> None:
        conn = FakeConnection([Message("a"), Close(1000, "bye"), Message("late")])
        outcome = await EchoRelay().run(conn)

        assert outcome is RelayOutcome.CLOSED
        assert conn.sent == ["Hello from Workers!", "a"]
        assert conn.script == [Message("late")]
        assert conn.closed_iterator

    async def test_stream_end_without_close(self) -> None:
        conn = FakeConnection([Message("a")])
        assert await EchoRelay().run(conn) is RelayOutcome.ENDED

    async def test_transport_fault(self) -> None:
        conn = FakeConnection([Message("a"), TransportFault("reset"), Message("never")])
        outcome = await EchoRelay().run(conn)

        assert outcome is RelayOutcome.FAULTED
        assert conn.sent == ["Hello from Workers!", "a"]
        assert conn.script == [Message("never")]

    async def test_on_close_hook(self) -> None:
        seen: list[Close] = []
        conn = FakeConnection([Close(1001, "going away")])
        await EchoRelay(on_close=seen.append).run(conn)
        assert seen == [Close(1001, "going away")]

    async def test_async_on_close_hook(self) -> None:
        seen: list[int] = []

        async def record(event: Close) -> None:
            seen.append(event.code)

        conn = FakeConnection([Close(1000)])
        await EchoRelay(on_close=record).run(conn)
        assert seen == [1000]

    async def test_on_close_not_called_on_fault(self) -> None:
        seen: list[Close] = []
        conn = FakeConnection([TransportFault("reset")])
        await EchoRelay(on_close=seen.append).run(conn)
        assert seen == []

    async def test_callable(self) -> None:
        conn = FakeConnection([Close()])
        assert await EchoRelay()(conn) is RelayOutcome.CLOSED


class TestConnectionTracker:
    async def test_spawn_and_outcomes(self) -> None:
        tracker = ConnectionTracker()
        relay = EchoRelay()
        tasks = [
            tracker.spawn(relay, FakeConnection([Close()])),
            tracker.spawn(relay, FakeConnection([Message("x")])),
            tracker.spawn(relay, FakeConnection([TransportFault("reset")])),
        ]
        assert tracker.active == 3

        await asyncio.gather(*tasks)
        await asyncio.sleep(0)

        assert tracker.active == 0
        assert tracker.outcomes[RelayOutcome.CLOSED] == 1
        assert tracker.outcomes[RelayOutcome.ENDED] == 1
        assert tracker.outcomes[RelayOutcome.FAULTED] == 1

    async def test_connections_are_independent(self) -> None:
        tracker = ConnectionTracker()
        first = FakeConnection([Message("one"), Close()])
        second = FakeConnection([Message("two"), Message("three")])
        tracker.spawn(EchoRelay(), first)
        tracker.spawn(EchoRelay(), second)
        await tracker.wait_closed()

        assert first.sent == ["Hello from Workers!", "one"]
        assert second.sent == ["Hello from Workers!", "two", "three"]

    async def test_crash_is_not_counted(self) -> None:
        tracker = ConnectionTracker()

        async def broken(connection: object) -> None:
            raise RuntimeError("boom")

        task = tracker.spawn(broken, object())
        await tracker.wait_closed()
        await asyncio.sleep(0)

        assert task.done()
        assert tracker.active == 0
        assert sum(tracker.outcomes.values()) == 0

    async def test_wait_closed_with_nothing_running(self) -> None:
        await ConnectionTracker().wait_closed()
