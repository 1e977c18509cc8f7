"""Immutable, case-insensitive HTTP headers over raw ASGI byte pairs."""

from collections.abc import Iterator, Mapping


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    Names are lower-cased once at construction; values decode lazily
    as latin-1. ``get_list`` returns every value for a repeated header.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", tuple((name.lower(), value) for name, value in raw))

    def _key(self, key: str) -> bytes:
        return key.lower().encode("latin-1")

    def __getitem__(self, key: str) -> str:
        wanted = self._key(key)
        for name, value in self._raw:
            if name == wanted:
                return value.decode("latin-1")
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        wanted = self._key(key)
        return any(name == wanted for name, _ in self._raw)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name.decode("latin-1") for name, _ in self._raw))

    def __len__(self) -> int:
        return len({name for name, _ in self._raw})

    def __repr__(self) -> str:
        return f"Headers({dict(self)!r})"

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*, in arrival order."""
        wanted = self._key(key)
        return [value.decode("latin-1") for name, value in self._raw if name == wanted]

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """Raw (lower-cased name, value) byte pairs."""
        return self._raw
