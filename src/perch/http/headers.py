"""Case-insensitive request headers."""

from collections.abc import Iterable, Mapping

from perch.http.multidict import MultiDict, pairs_of


class Headers(MultiDict):
    """Request headers keyed by lower-cased name.

    Repeated headers keep every value (``get_list``).
    """

    __slots__ = ()

    @staticmethod
    def _fold(key: str) -> str:
        return key.lower()

    @classmethod
    def from_asgi(cls, raw: Iterable[tuple[bytes, bytes]]) -> "Headers":
        """Decode ASGI ``(name, value)`` byte pairs."""
        return cls((name.decode("latin-1"), value.decode("latin-1")) for name, value in raw)

    @classmethod
    def from_pairs(cls, pairs: Mapping[str, str] | Iterable[tuple[str, str]]) -> "Headers":
        return cls(pairs_of(pairs))
