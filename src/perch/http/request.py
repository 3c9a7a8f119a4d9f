"""Immutable HTTP request.

Frozen metadata with async body access. Transport adapters build a
``Request`` once per exchange; the dispatcher and page hooks only read it.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import anyio

from perch.http.headers import Headers
from perch.http.query import QueryParams

if TYPE_CHECKING:
    from perch._internal.asgi import Receive, Scope
    from perch.http.forms import FormData

BodySource = Callable[[], AsyncIterator[bytes]]


async def _no_body() -> AsyncIterator[bytes]:
    return
    yield


def _raw_pathname(scope: Scope) -> str:
    # ``path`` is already percent-decoded; route params are decoded once, later
    raw_path = scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1").partition("?")[0]
    return scope["path"]


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, pathname, headers, query) is frozen at creation.
    The body is read lazily through ``body()``, ``text()``, ``json()``
    and ``form()``. Each accessor is memoized per request object: the
    transport body is consumed at most once.
    """

    method: str
    pathname: str
    headers: Headers
    query: QueryParams

    # Private: produces the raw body chunks, called at most once
    _body_source: BodySource = field(default=_no_body, repr=False, compare=False)

    # Private: mutable cache for body and parsed form data
    # (dict contents are mutable even though the field reference is frozen)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Pathname plus query string."""
        qs = self.query.raw
        if qs:
            return f"{self.pathname}?{qs}"
        return self.pathname

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body, once."""
        if "_body" in self._cache:
            return self._cache["_body"]
        lock = self._cache.setdefault("_lock", anyio.Lock())
        async with lock:
            if "_body" not in self._cache:
                chunks = [chunk async for chunk in self._body_source()]
                self._cache["_body"] = b"".join(chunks)
        return self._cache["_body"]

    async def text(self) -> str:
        """Read the body as UTF-8 text."""
        raw = await self.body()
        return raw.decode("utf-8")

    async def json(self) -> Any:
        """Parse the body as JSON."""
        if "_json" not in self._cache:
            self._cache["_json"] = json_module.loads(await self.body())
        return self._cache["_json"]

    async def form(self) -> FormData:
        """Parse the body as form data (URL-encoded or multipart).

        Raises:
            ValueError: If Content-Type is not a form encoding.
        """
        if "_form" in self._cache:
            return self._cache["_form"]

        from perch.http.forms import URLENCODED, parse_form_data

        raw = await self.body()
        result = await parse_form_data(raw, self.content_type or URLENCODED)
        self._cache["_form"] = result
        return result

    # -- Factories --

    @classmethod
    def build(
        cls,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] = (),
        body: bytes = b"",
    ) -> Request:
        """Create a Request from plain values (tests, scripts, adapters)."""
        pathname, _, query_string = url.partition("?")

        async def source() -> AsyncIterator[bytes]:
            if body:
                yield body

        return cls(
            method=method,
            pathname=pathname or "/",
            headers=Headers.from_pairs(headers),
            query=QueryParams(query_string),
            _body_source=source,
        )

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""

        async def source() -> AsyncIterator[bytes]:
            while True:
                message = await receive()
                chunk = message.get("body", b"")
                if chunk:
                    yield chunk
                if not message.get("more_body", False):
                    break

        return cls(
            method=scope["method"],
            pathname=_raw_pathname(scope),
            headers=Headers.from_asgi(scope.get("headers", ())),
            query=QueryParams(scope.get("query_string", b"")),
            _body_source=source,
        )
