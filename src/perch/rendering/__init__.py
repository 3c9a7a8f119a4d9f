"""Rendering — kida views streamed inside a document prefix and suffix."""

from perch.rendering.body import (
    ComposedPipe,
    DocumentContext,
    RawPipe,
    RawStream,
    RenderBody,
    StreamOptions,
)
from perch.rendering.hydration import bootstrap_data_script, page_data, serialize_page_data
from perch.rendering.view import RenderHandle, View, render_view

__all__ = [
    "ComposedPipe",
    "DocumentContext",
    "RawPipe",
    "RawStream",
    "RenderBody",
    "RenderHandle",
    "StreamOptions",
    "View",
    "bootstrap_data_script",
    "page_data",
    "render_view",
    "serialize_page_data",
]
