"""Ordered route table with first-match-wins dispatch.

Routes are registered during setup and frozen when the app compiles.
Lookup walks the table in registration order, so an earlier route
always beats a later one that would also match, regardless of how
specific either pattern is.
"""

from perch._internal.invoke import invoke
from perch.errors import HTTPError, NotFound
from perch.http.request import Request
from perch.routing.matcher import match, split_path
from perch.routing.route import Route, RouteMatch
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.negotiation import AnyResponse, negotiate


class Router:
    """Route table plus dispatch.

    Usage::

        router = Router()
        router.add(Route("GET", "/form/:field", parse_pattern("/form/:field"), handler))
        router.compile()
        found = router.match("GET", "/form/email")
        found.params  # {"field": "email"}
    """

    __slots__ = ("_compiled", "_debug", "_routes")

    def __init__(self, *, debug: bool = False) -> None:
        self._routes: list[Route] = []
        self._compiled = False
        self._debug = debug

    def add(self, route: Route) -> None:
        """Append a route. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        self._routes.append(route)

    @property
    def routes(self) -> list[Route]:
        """Registered routes in registration order."""
        return list(self._routes)

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Return the first route whose method and pattern both match.

        Raises ``NotFound`` when nothing matches, including when only
        the method differs.
        """
        segments = split_path(path)
        for route in self._routes:
            if route.method != method:
                continue
            result = match(route.pattern, segments)
            if result.matched:
                return RouteMatch(route=route, params=result.params)
        raise NotFound()

    async def dispatch(self, request: Request) -> AnyResponse:
        """Route *request* to exactly one handler and return its response.

        A miss returns the fixed 404 without calling any handler.
        ``HTTPError`` from a handler becomes its status and detail; any
        other exception is logged and becomes a generic 500.
        """
        try:
            found = self.match(request.method, request.path)
        except NotFound as exc:
            return handle_http_error(exc, request)

        routed = request.with_params(found.params)
        try:
            result = await invoke(found.route.handler, routed, found.params)
            return negotiate(result)
        except HTTPError as exc:
            return handle_http_error(exc, routed)
        except Exception as exc:
            return handle_internal_error(exc, routed, debug=self._debug)
