"""Environment bindings: read-only variables exposed to route handlers."""

import os
from collections.abc import Iterator, Mapping

from perch.errors import MissingBinding


class Env(Mapping[str, str]):
    """Read-only view of the variables a deployment binds to the app.

    Defaults to the process environment. Pass an explicit mapping in
    tests or when bindings come from somewhere else::

        env = Env({"WORKERS_RS_VERSION": "1.2.3"})
        env.var("WORKERS_RS_VERSION")  # "1.2.3"
    """

    __slots__ = ("_bindings",)

    def __init__(self, bindings: Mapping[str, str] | None = None) -> None:
        self._bindings: Mapping[str, str] = os.environ if bindings is None else dict(bindings)

    def var(self, name: str) -> str:
        """Return the value bound to *name*.

        Raises ``MissingBinding`` if nothing is bound.
        """
        try:
            return self._bindings[name]
        except KeyError:
            raise MissingBinding(name) from None

    def __getitem__(self, key: str) -> str:
        return self._bindings[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"Env({sorted(self._bindings)!r})"
