"""Content negotiation: maps handler return values to responses.

isinstance-based dispatch, no magic, fully predictable.
"""

from typing import Any

from perch.errors import ConfigurationError
from perch.http.response import Response
from perch.realtime.websocket import WebSocketUpgrade

type AnyResponse = Response | WebSocketUpgrade


def negotiate(value: Any) -> AnyResponse:
    """Convert a route handler's return value to a response.

    Dispatch order:

    1. ``Response`` / ``WebSocketUpgrade`` -> pass through
    2. ``str``              -> 200, text/plain
    3. ``bytes``            -> 200, application/octet-stream
    4. ``dict`` / ``list``  -> 200, application/json
    5. ``None``             -> 204, empty body
    6. ``(value, int)``     -> negotiate value, override status
    """
    match value:
        case Response() | WebSocketUpgrade():
            return value
        case str():
            return Response(body=value)
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case dict() | list():
            return Response.from_json(value)
        case None:
            return Response(status=204)
        case (inner, int() as status):
            negotiated = negotiate(inner)
            if isinstance(negotiated, WebSocketUpgrade):
                msg = "A WebSocketUpgrade cannot carry a status override."
                raise ConfigurationError(msg)
            return negotiated.with_status(status)
    msg = (
        f"Route handler returned {type(value).__name__}, which perch cannot "
        "turn into a response. Return str, bytes, dict, list, Response, or "
        "WebSocketUpgrade."
    )
    raise ConfigurationError(msg)
