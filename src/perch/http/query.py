"""Query string parameters."""

from urllib.parse import parse_qsl

from perch.http.multidict import MultiDict


class QueryParams(MultiDict):
    """Parsed query string. Blank values are kept; ``raw`` is the undecoded text."""

    __slots__ = ("raw",)

    def __init__(self, query_string: bytes | str = "") -> None:
        if isinstance(query_string, bytes):
            query_string = query_string.decode("latin-1")
        super().__init__(parse_qsl(query_string, keep_blank_values=True))
        self.raw = query_string
