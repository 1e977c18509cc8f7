"""Path pattern parsing and matching.

Patterns use ``:name`` for a single-segment parameter and ``*name`` for
a trailing catch-all::

    parse_pattern("/form/:field")     -> (Literal("form"), NamedParam("field"))
    parse_pattern("/static/*path")    -> (Literal("static"), CatchAll("path"))

Matching is a single left-to-right pass with no backtracking.
"""

import re

from perch.errors import ConfigurationError
from perch.routing.route import CatchAll, Literal, MatchResult, NamedParam, PathSegment

_FOREIGN_PARAM = re.compile(r"^(\{[^}]*\}|<[^>]*>)$")


def split_path(path: str) -> list[str]:
    """Split a request path into segments.

    One leading slash is dropped; a trailing slash yields a final empty
    segment so ``/form/`` never looks like ``/form``::

        split_path("/")          -> []
        split_path("/form/name") -> ["form", "name"]
        split_path("/form/")     -> ["form", ""]
    """
    trimmed = path.removeprefix("/")
    if not trimmed:
        return []
    return trimmed.split("/")


def parse_pattern(path: str) -> tuple[PathSegment, ...]:
    """Parse a route path into segment specs.

    Raises ``ConfigurationError`` for paths without a leading slash,
    empty or repeated parameter names, a catch-all that is not the last
    segment, and ``{name}``/``<name>`` placeholders.
    """
    if not path.startswith("/"):
        msg = f"Route path {path!r} must start with '/'."
        raise ConfigurationError(msg)

    parts = split_path(path)
    segments: list[PathSegment] = []
    seen: set[str] = set()

    for index, part in enumerate(parts):
        if _FOREIGN_PARAM.match(part):
            msg = (
                f"Route path {path!r} uses {part!r}; perch parameters are "
                f"written ':name' (one segment) or '*name' (rest of path)."
            )
            raise ConfigurationError(msg)

        if part[:1] in (":", "*"):
            name = part[1:]
            if not name:
                msg = f"Route path {path!r} has a parameter with no name."
                raise ConfigurationError(msg)
            if name in seen:
                msg = f"Route path {path!r} binds {name!r} more than once."
                raise ConfigurationError(msg)
            seen.add(name)
            if part[0] == "*":
                if index != len(parts) - 1:
                    msg = f"Catch-all {part!r} must be the last segment of {path!r}."
                    raise ConfigurationError(msg)
                segments.append(CatchAll(name))
            else:
                segments.append(NamedParam(name))
        else:
            segments.append(Literal(part))

    return tuple(segments)


def match(pattern: tuple[PathSegment, ...], segments: list[str]) -> MatchResult:
    """Match request path *segments* against *pattern*.

    Pure function. Fails as soon as a Literal or NamedParam disagrees.
    """
    params: dict[str, str] = {}

    for index, expected in enumerate(pattern):
        if isinstance(expected, CatchAll):
            params[expected.name] = "/".join(segments[index:])
            return MatchResult(matched=True, params=params)

        if index >= len(segments):
            # Request path ran out while the pattern still needs a segment.
            return MatchResult.miss()

        part = segments[index]
        if isinstance(expected, Literal):
            if part != expected.value:
                return MatchResult.miss()
        elif not part:
            return MatchResult.miss()
        else:
            params[expected.name] = part

    if len(segments) > len(pattern):
        return MatchResult.miss()

    return MatchResult(matched=True, params=params)
