"""Serve a perch App over the network with the pounce ASGI server.

Pounce's ``run()`` takes an import string, but perch hands it the live
``App`` object, so ``pounce.Server`` is used directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from perch.app import App


def run_server(
    app: App,
    *,
    host: str = "127.0.0.1",
    port: int = 8787,
    workers: int = 1,
    log_level: str = "info",
    websocket_max_message_size: int = 1024 * 1024,
) -> None:
    """Start pounce with *app* and block until it stops.

    Args:
        app: The perch App (an ASGI callable).
        host: Bind host address.
        port: Bind port number.
        workers: Worker count (0 = auto-detect from CPU count).
        log_level: Server log level (debug, info, warning, error).
        websocket_max_message_size: Largest WebSocket frame pounce accepts.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=workers,
        log_level=log_level,
        websocket_max_message_size=websocket_max_message_size,
    )
    Server(config, app).run()
