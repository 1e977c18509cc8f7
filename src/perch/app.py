"""Perch application class.

Mutable during setup (route registration, middleware, hooks).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

import inspect
import logging
import threading
from collections.abc import Callable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch.config import AppConfig
from perch.env import Env
from perch.errors import ConfigurationError
from perch.middleware.protocol import Middleware, Next
from perch.realtime.relay import ConnectionTracker
from perch.routing.matcher import parse_pattern
from perch.routing.route import HTTP_METHODS, Route
from perch.routing.router import Router
from perch.server.handler import build_pipeline, handle_request, handle_websocket

logger = logging.getLogger("perch.server")

type Handler = Callable[..., Any]


class App:
    """The perch application.

    Mutable during setup (route registration, middleware, hooks).
    Frozen at runtime when ``app.run()`` or ``__call__()`` is first invoked.

    Usage::

        app = App(env=Env({"WORKERS_RS_VERSION": "1.2.3"}))

        @app.get("/")
        def index(request, params):
            return "Hello from Workers!"

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the route table.
    """

    __slots__ = (
        "_freeze_lock",
        "_frozen",
        "_middleware_list",
        "_pipeline",
        "_router",
        "_routes",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
        "env",
        "tracker",
    )

    def __init__(self, config: AppConfig | None = None, *, env: Env | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self.env: Env = env if env is not None else Env()
        self.tracker = ConnectionTracker()
        self._routes: list[Route] = []
        self._middleware_list: list[Middleware] = []
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock = threading.Lock()

        # Compiled state: set during _freeze()
        self._router: Router | None = None
        self._pipeline: Next | None = None

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        One route is added per method, in the order given. The pattern
        is validated immediately, so a bad path fails at import time.

        Args:
            path: URL pattern. ``:name`` binds one segment, ``*name`` the rest.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional route name, shown by ``perch routes``.
        """
        pattern = parse_pattern(path)
        wanted = [m.upper() for m in (methods or ["GET"])]
        unknown = [m for m in wanted if m not in HTTP_METHODS]
        if unknown:
            msg = f"Unsupported HTTP method(s) for {path!r}: {', '.join(unknown)}"
            raise ConfigurationError(msg)

        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            for method in wanted:
                self._routes.append(Route(method, path, pattern, func, name))
            return func

        return decorator

    def get(self, path: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        """Shorthand for ``route(path, methods=["GET"])``."""
        return self.route(path, methods=["GET"], name=name)

    def post(self, path: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        """Shorthand for ``route(path, methods=["POST"])``."""
        return self.route(path, methods=["POST"], name=name)

    @property
    def routes(self) -> list[Route]:
        """Registered routes in registration order."""
        return list(self._routes)

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline. The first added runs outermost."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Configure logging, compile the app, and serve it with pounce."""
        from perch.logs import configure_logging
        from perch.server.serve import run_server

        configure_logging(self.config.log_level, self.config.log_format)
        self._ensure_frozen()
        run_server(
            self,
            host=host or self.config.host,
            port=port or self.config.port,
            workers=self.config.workers,
            log_level=self.config.log_level,
            websocket_max_message_size=self.config.websocket_max_message_size,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point for lifespan, http and websocket scopes."""
        kind = scope["type"]
        if kind == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._pipeline is not None

        if kind == "http":
            await handle_request(scope, receive, send, pipeline=self._pipeline, config=self.config)
        elif kind == "websocket":
            await handle_websocket(
                scope,
                receive,
                send,
                pipeline=self._pipeline,
                tracker=self.tracker,
                config=self.config,
            )
        else:
            logger.debug("ignoring unsupported ASGI scope %r", kind)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol."""
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        """Run startup hooks in registration order."""
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        """Run shutdown hooks in registration order."""
        if self.tracker.active:
            logger.info("shutting down with %d open relay(s)", self.tracker.active)
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        router = Router(debug=self.config.debug)
        for route in self._routes:
            router.add(route)
        router.compile()
        self._router = router
        self._pipeline = build_pipeline(router, tuple(self._middleware_list))
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and hooks before calling app.run()."
            )
            raise RuntimeError(msg)
