"""Route data model: path segments, routes, and match results."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from perch.http.request import Request

HTTP_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})


@dataclass(frozen=True, slots=True)
class Literal:
    """A segment that must equal the request segment exactly."""

    value: str


@dataclass(frozen=True, slots=True)
class NamedParam:
    """``:name``: binds one non-empty request segment."""

    name: str


@dataclass(frozen=True, slots=True)
class CatchAll:
    """``*name``: binds the rest of the path, possibly empty. Always last."""

    name: str


type PathSegment = Literal | NamedParam | CatchAll


class RouteHandler(Protocol):
    """The one capability every route provides.

    Plain functions satisfy it; ``async def`` handlers are awaited::

        def hello(request: Request, params: dict[str, str]) -> str:
            return "hi"
    """

    def __call__(self, request: Request, params: dict[str, str]) -> Any | Awaitable[Any]: ...


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition: one method, one pattern, one handler."""

    method: str
    path: str
    pattern: tuple[PathSegment, ...]
    handler: Callable[..., Any]
    name: str | None = None


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of matching one pattern against one request path.

    ``params`` keeps the order in which parameters appear in the pattern.
    """

    matched: bool
    params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def miss(cls) -> MatchResult:
        return cls(matched=False)


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful router lookup."""

    route: Route
    params: dict[str, str]
