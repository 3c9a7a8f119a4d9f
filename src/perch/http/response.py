"""HTTP response value with chainable ``.with_*()`` transformations.

A ``Response`` is a pure value: producing one has no side effect. When
the body is a ``RenderBody`` nothing is rendered until a transport
consumes one of its stream forms.
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from perch.rendering.body import RenderBody

HTML = "text/html"
JSON = "application/json"


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    ``headers`` keeps insertion order with lower-cased names. ``body``
    is a lazily rendered page, raw bytes, or ``None`` for empty bodies.
    """

    status: int = 200
    headers: tuple[tuple[str, str], ...] = ()
    body: RenderBody | bytes | None = None

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name.lower(), value)))

    def with_headers(self, headers: tuple[tuple[str, str], ...]) -> Response:
        """Return a new Response with additional headers."""
        new = tuple((name.lower(), value) for name, value in headers)
        return replace(self, headers=(*self.headers, *new))

    # -- Accessors --

    def header(self, name: str) -> str | None:
        """Return the first value of header *name*, or ``None``."""
        name = name.lower()
        for key, value in self.headers:
            if key == name:
                return value
        return None

    @property
    def content_type(self) -> str | None:
        return self.header("content-type")

    @property
    def is_rendered(self) -> bool:
        """True when the body is a lazily rendered page."""
        return self.body is not None and not isinstance(self.body, bytes)

    @property
    def text(self) -> str:
        """Raw body decoded as UTF-8 (empty for absent or rendered bodies)."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return ""


def json(value: Any, status: int = 200) -> Response:
    """Format *value* as a JSON response."""
    return Response(
        status=status,
        headers=(("content-type", JSON),),
        body=json_module.dumps(value).encode("utf-8"),
    )


def redirect(location: str, status: int = 302) -> Response:
    """Format a redirect response. No body, no content type."""
    return Response(status=status, headers=(("location", location),))


def empty(status: int, headers: tuple[tuple[str, str], ...] = ()) -> Response:
    """A response without a body (404, 405, 415)."""
    return Response(status=status, headers=headers)


def html(body: RenderBody, status: int = 200) -> Response:
    """Wrap a rendered page body as a ``text/html`` response."""
    return Response(status=status, headers=(("content-type", HTML),), body=body)
