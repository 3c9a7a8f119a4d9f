"""Lazily rendered response body with several consumption shapes.

``RenderBody`` owns at most one underlying render. Nothing happens
until a transport calls one of the consumption methods; every method is
a thin adapter over the same ``RenderHandle``.

    body.text()                  -> whole document, all data resolved
    body.raw_byte_stream(opts)   -> RawStream(prefix, suffix, stream)
    body.raw_callback_stream()   -> RawPipe(prefix, suffix, stream)
    body.byte_stream(opts)       -> async iterator: prefix, content, suffix
    body.callback_stream(opts)   -> ComposedPipe with pipe(write)

The first call decides the options. Consuming the same body twice is
not supported.
"""

import html
from collections.abc import AsyncIterator, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import anyio

from perch._internal.invoke import invoke
from perch.rendering.hydration import bootstrap_data_script
from perch.rendering.view import (
    ErrorCallback,
    RenderHandle,
    View,
    Write,
    render_view,
    split_context,
)


@dataclass(frozen=True, slots=True)
class StreamOptions:
    """Options for acquiring a body stream.

    ``signal`` aborts the render when set. With ``wait_for_all_ready``
    the stream is handed out only after deferred data has settled.
    ``head``/``tail`` are extra markup for the document prefix/suffix.
    """

    on_error: ErrorCallback | None = None
    signal: anyio.Event | None = None
    wait_for_all_ready: bool = False
    head: str = ""
    tail: str = ""


@dataclass(frozen=True, slots=True)
class DocumentContext:
    """Everything around the view: document functions, assets, page data."""

    render_head: Callable[..., str]
    render_tail: Callable[..., str]
    head: Any = None
    html_attributes: str = ""
    body_attributes: str = ""
    scripts: tuple[str, ...] = ()
    css: tuple[str, ...] = ()
    page_data: Mapping[str, Any] = field(default_factory=dict)
    hydrate: bool = True
    data_global: str = "__SITE_DATA__"


@dataclass(frozen=True, slots=True)
class RawStream:
    prefix: Callable[[], bytes]
    suffix: Callable[[], bytes]
    stream: AsyncIterator[bytes]


@dataclass(frozen=True, slots=True)
class RawPipe:
    prefix: Callable[[], bytes]
    suffix: Callable[[], bytes]
    stream: RenderHandle


@dataclass(frozen=True, slots=True)
class ComposedPipe:
    """Writes prefix, content, then suffix through ``pipe(write)``."""

    raw: RawPipe

    async def pipe(self, write: Write) -> None:
        await invoke(write, self.raw.prefix())
        # Ends normally on abort or late errors, so the suffix still closes the document
        await self.raw.stream.pipe(write)
        await invoke(write, self.raw.suffix())


async def _compose(raw: RawStream) -> AsyncIterator[bytes]:
    yield raw.prefix()
    async for chunk in raw.stream:
        yield chunk
    yield raw.suffix()


class RenderBody:
    """A page body rendered on first consumption."""

    __slots__ = ("_document", "_handle", "_head_html", "_lock", "_view")

    def __init__(self, view: View, document: DocumentContext) -> None:
        self._view = view
        self._document = document
        self._handle: RenderHandle | None = None
        self._head_html = ""
        self._lock: anyio.Lock | None = None

    @property
    def view(self) -> View:
        return self._view

    @property
    def document(self) -> DocumentContext:
        return self._document

    @property
    def started(self) -> bool:
        """True once a consumption method started the render."""
        return self._handle is not None

    # -- Public consumption methods --

    async def text(self) -> str:
        """Render the full document, waiting for all deferred data."""
        raw = await self.raw_byte_stream(StreamOptions(wait_for_all_ready=True))
        parts = [raw.prefix()]
        parts.extend([chunk async for chunk in raw.stream])
        parts.append(raw.suffix())
        return b"".join(parts).decode("utf-8")

    async def raw_byte_stream(self, options: StreamOptions | None = None) -> RawStream:
        options = options or StreamOptions()
        handle = await self._acquire(options)
        return RawStream(
            prefix=self._prefix,
            suffix=lambda: self._suffix(options),
            stream=handle.chunks(),
        )

    async def raw_callback_stream(self, options: StreamOptions | None = None) -> RawPipe:
        options = options or StreamOptions()
        handle = await self._acquire(options)
        return RawPipe(
            prefix=self._prefix,
            suffix=lambda: self._suffix(options),
            stream=handle,
        )

    async def byte_stream(self, options: StreamOptions | None = None) -> AsyncIterator[bytes]:
        """Acquire the render and return one stream of prefix, content, suffix.

        Shell errors raise here, before any byte is produced.
        """
        return _compose(await self.raw_byte_stream(options))

    async def callback_stream(self, options: StreamOptions | None = None) -> ComposedPipe:
        return ComposedPipe(await self.raw_callback_stream(options))

    # -- Internals --

    async def _acquire(self, options: StreamOptions) -> RenderHandle:
        if self._lock is None:
            self._lock = anyio.Lock()
        async with self._lock:
            if self._handle is None:
                self._handle = await self._start(options)
        handle = self._handle
        if options.wait_for_all_ready:
            await handle.settle()
        return handle

    async def _start(self, options: StreamOptions) -> RenderHandle:
        document = self._document
        ready, pending = split_context(self._view.context)
        head_parts = [options.head]
        if document.head is not None:
            head_parts.append(document.head.render({**ready, **dict.fromkeys(pending)}))
        head_parts.extend(
            f'<link rel="stylesheet" href="{html.escape(href, quote=True)}">' for href in document.css
        )
        self._head_html = "".join(head_parts)

        scripts = document.scripts if document.hydrate else ()
        data_script = (
            bootstrap_data_script(document.page_data, document.data_global) if scripts else None
        )
        return await render_view(
            self._view,
            on_error=options.on_error,
            signal=options.signal,
            bootstrap_script_urls=scripts,
            bootstrap_data_script=data_script,
        )

    def _prefix(self) -> bytes:
        document = self._document
        return document.render_head(
            head=self._head_html,
            html_attributes=document.html_attributes,
            body_attributes=document.body_attributes,
        ).encode("utf-8")

    def _suffix(self, options: StreamOptions) -> bytes:
        return self._document.render_tail(tail=options.tail).encode("utf-8")
