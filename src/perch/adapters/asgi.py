"""ASGI transport adapter.

Translates ASGI scope/messages into a perch ``Request``, dispatches it
through a ``Server`` and sends the ``Response`` back. Rendered bodies
are streamed with ``callback_stream``: prefix, content, suffix, one
ASGI body message per chunk.

From body acquisition to the last chunk, a sibling task watches
``receive()`` for ``http.disconnect`` and aborts the render; the suffix
is still sent so the document is never left unterminated.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

import anyio

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.concurrency import unwrap_group
from perch._internal.invoke import invoke
from perch.errors import RenderAborted
from perch.http.request import Request
from perch.http.response import Response
from perch.rendering.body import RenderBody, StreamOptions
from perch.server.factory import Server

logger = logging.getLogger("perch.server")

ASGIApp = Callable[[Scope, Receive, Send], Any]


@dataclass(frozen=True, slots=True)
class AdapterOptions:
    """Transport options.

    ``wait_for_all_ready`` may be a predicate on the request, e.g. to
    serve complete documents to crawlers.
    """

    wait_for_all_ready: bool | Callable[[Request], bool] = False
    head: str = ""
    tail: str = ""


def _body_allowed(status: int) -> bool:
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _raw_headers(response: Response) -> list[tuple[bytes, bytes]]:
    return [(name.encode("latin-1"), value.encode("latin-1")) for name, value in response.headers]


def _on_render_error(error: BaseException) -> None:
    if isinstance(error, RenderAborted):
        logger.debug("Render aborted: %s", error)
        return
    logger.error("Error while streaming page", exc_info=error)


def create_asgi_app(
    server: Server,
    *,
    get_context: Callable[[Request], Any] | None = None,
    options: AdapterOptions | None = None,
) -> ASGIApp:
    """Wrap *server* as an ASGI 3 application.

    ``get_context(request)`` (sync or async) provides the per-request
    user context handed to page hooks.
    """
    options = options or AdapterOptions()

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await _handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        request = Request.from_asgi(scope, receive)
        context = await invoke(get_context, request) if get_context is not None else None
        response = await server(request, context)
        await send_response(
            response,
            send,
            receive,
            recover=lambda error: server.recover(request, error, context),
            stream_options=_stream_options(options, request),
        )

    return app


def _stream_options(options: AdapterOptions, request: Request) -> StreamOptions:
    wait = options.wait_for_all_ready
    if callable(wait):
        wait = wait(request)
    return StreamOptions(
        on_error=_on_render_error,
        wait_for_all_ready=bool(wait),
        head=options.head,
        tail=options.tail,
    )


async def send_response(
    response: Response,
    send: Send,
    receive: Receive,
    *,
    recover: Callable[[BaseException], Any] | None = None,
    stream_options: StreamOptions | None = None,
) -> None:
    """Send *response*, streaming rendered bodies.

    A sibling task watches ``receive()`` for ``http.disconnect`` from
    the moment the body is acquired, so a render waiting for all
    deferred data is aborted as soon as the client goes away.

    If a rendered body fails before its shell is ready, ``recover`` is
    asked for a replacement response (the error page). When recovery
    fails too, a plain 500 is sent.
    """
    body = response.body
    if not isinstance(body, RenderBody):
        await _send_buffered(response, send)
        return

    signal = anyio.Event()
    options = replace(stream_options or StreamOptions(on_error=_on_render_error), signal=signal)

    async def write(chunk: bytes) -> None:
        if chunk:
            await send({"type": "http.response.body", "body": chunk, "more_body": True})

    async def monitor_disconnect() -> None:
        while True:
            message = await receive()
            if message.get("type") == "http.disconnect":
                logger.debug("Client disconnected, aborting render")
                signal.set()
                return

    failure: Exception | None = None
    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(monitor_disconnect)
            try:
                pipe = await body.callback_stream(options)
            except Exception as exc:
                failure = exc
            else:
                await send(
                    {
                        "type": "http.response.start",
                        "status": response.status,
                        "headers": _raw_headers(response),
                    }
                )
                await pipe.pipe(write)
                await send({"type": "http.response.body", "body": b"", "more_body": False})
            tg.cancel_scope.cancel()
    except ExceptionGroup as group:
        raise unwrap_group(group) from None

    if failure is not None:
        await _recover_shell_error(failure, send, receive, recover, stream_options)


async def _recover_shell_error(
    error: Exception,
    send: Send,
    receive: Receive,
    recover: Callable[[BaseException], Any] | None,
    stream_options: StreamOptions | None,
) -> None:
    if isinstance(error, RenderAborted):
        logger.debug("Client disconnected before the page shell was ready")
        return
    logger.error("Error rendering page shell", exc_info=error)
    if recover is None:
        await _send_buffered(Response(status=500, body=b"Internal Server Error"), send)
        return
    try:
        fallback = await recover(error)
    except Exception:
        logger.exception("Error rendering the error page")
        await _send_buffered(Response(status=500, body=b"Internal Server Error"), send)
        return
    await send_response(fallback, send, receive, recover=None, stream_options=stream_options)


async def _send_buffered(response: Response, send: Send) -> None:
    body = response.body if isinstance(response.body, bytes) else b""
    if not _body_allowed(response.status):
        body = b""
    raw_headers = _raw_headers(response)
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send({"type": "http.response.body", "body": body})


async def _handle_lifespan(receive: Receive, send: Send) -> None:
    while True:
        message = await receive()
        if message["type"] == "lifespan.startup":
            await send({"type": "lifespan.startup.complete"})
        elif message["type"] == "lifespan.shutdown":
            await send({"type": "lifespan.shutdown.complete"})
            return
