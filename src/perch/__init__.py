"""Perch: a small ASGI edge dispatcher.

Routes HTTP requests by ``:name`` / ``*name`` path patterns and relays
WebSocket text frames back to their sender.

Basic usage::

    from perch import App, EchoRelay, WebSocketUpgrade

    app = App()

    @app.get("/")
    def index(request, params):
        return "Hello from Workers!"

    @app.get("/websocket")
    def websocket(request, params):
        return WebSocketUpgrade(EchoRelay())

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BadRequest",
    "ConfigurationError",
    "EchoRelay",
    "Env",
    "HTTPError",
    "NotFound",
    "PerchError",
    "Request",
    "Response",
    "UnprocessableEntity",
    "WebSocketUpgrade",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Env":
        from perch.env import Env

        return Env

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name == "Response":
        from perch.http.response import Response

        return Response

    if name == "EchoRelay":
        from perch.realtime.relay import EchoRelay

        return EchoRelay

    if name == "WebSocketUpgrade":
        from perch.realtime.websocket import WebSocketUpgrade

        return WebSocketUpgrade

    if name in (
        "BadRequest",
        "ConfigurationError",
        "HTTPError",
        "NotFound",
        "PerchError",
        "UnprocessableEntity",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
