"""Routing: ordered route table with ``:name`` and ``*name`` patterns.

Routes are registered during setup and frozen when the app compiles.
"""

from perch.routing.matcher import match, parse_pattern, split_path
from perch.routing.route import (
    CatchAll,
    Literal,
    MatchResult,
    NamedParam,
    PathSegment,
    Route,
    RouteHandler,
    RouteMatch,
)
from perch.routing.router import Router

__all__ = [
    "CatchAll",
    "Literal",
    "MatchResult",
    "NamedParam",
    "PathSegment",
    "Route",
    "RouteHandler",
    "RouteMatch",
    "Router",
    "match",
    "parse_pattern",
    "split_path",
]
