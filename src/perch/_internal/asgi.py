"""Raw ASGI type aliases.

Only the ASGI handler and the WebSocket handle touch these directly;
handlers see ``Request``, ``Response`` and ``WebSocket``.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]


def raw_headers(pairs: Any) -> tuple[tuple[bytes, bytes], ...]:
    """Normalise scope headers (lists or tuples of byte pairs) to a tuple."""
    return tuple((bytes(name), bytes(value)) for name, value in pairs or ())
