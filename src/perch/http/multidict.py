"""Read-only multi-value mappings shared by headers, query strings and forms."""

from collections.abc import Iterable, Iterator, Mapping


class MultiDict(Mapping[str, str]):
    """A read-only string mapping where a key may carry several values.

    Indexing returns the first value; ``get_list`` returns every value in
    arrival order. Subclasses fold keys (e.g. lower-case header names).
    """

    __slots__ = ("_values",)

    def __init__(self, items: Iterable[tuple[str, str]] = ()) -> None:
        values: dict[str, list[str]] = {}
        for key, value in items:
            values.setdefault(self._fold(key), []).append(value)
        self._values = values

    @staticmethod
    def _fold(key: str) -> str:
        return key

    def __getitem__(self, key: str) -> str:
        return self._values[self._fold(key)][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._fold(key) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._values!r})"

    def get_list(self, key: str) -> list[str]:
        return list(self._values.get(self._fold(key), ()))


def pairs_of(source: Mapping[str, str] | Iterable[tuple[str, str]]) -> Iterable[tuple[str, str]]:
    """Accept a plain mapping or an iterable of pairs."""
    return source.items() if isinstance(source, Mapping) else source
