"""Shell-first view rendering on top of kida templates.

Renders a page shell immediately with ``None`` for context values that
are still loading, then resolves those values concurrently and streams
re-rendered blocks that depend on them.

Pipeline::

    View(template, {"title": "Home", "stats": load_stats()})

    1. Separate plain vs. awaitable context values
    2. Render the page with None for awaitable keys, wrap in the app
       template (shell ready)
    3. Resolve awaitables concurrently (anyio task group), watching the
       abort signal in a sibling task
    4. For each deferred key, find dependent blocks via block_metadata
    5. Render each block with the full context as a <template> + <script>
       swap pair
    6. Append the bootstrap scripts (all ready)
"""

import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import anyio
from kida.template import Markup

from perch._internal.concurrency import unwrap_group
from perch._internal.invoke import invoke
from perch.errors import RenderAborted
from perch.rendering.hydration import bootstrap_scripts

logger = logging.getLogger("perch.render")

ErrorCallback = Callable[[BaseException], Any]
Write = Callable[[bytes], Any]


@dataclass(frozen=True, slots=True)
class View:
    """A page template and its context, optionally wrapped by the app template.

    The wrapper is rendered with ``wrapper_context`` plus ``content``,
    the page shell as ``Markup``.
    """

    template: Any
    context: Mapping[str, Any] = field(default_factory=dict)
    wrapper: Any = None
    wrapper_context: Mapping[str, Any] = field(default_factory=dict)


def split_context(context: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Awaitable[Any]]]:
    """Separate plain values from awaitables (deferred values)."""
    ready: dict[str, Any] = {}
    pending: dict[str, Awaitable[Any]] = {}
    for key, value in context.items():
        if inspect.isawaitable(value):
            pending[key] = value
        else:
            ready[key] = value
    return ready, pending


def format_swap_script(block_html: str, target_id: str) -> str:
    """Wrap rendered block HTML as a ``<template>`` + ``<script>`` pair.

    The inline script moves the template content into the element whose
    id is *target_id*.
    """
    escaped_id = target_id.replace('"', "&quot;")
    template_id = f"_perch_d_{target_id}"
    return (
        f'<template id="{template_id}">{block_html}</template>'
        f"<script>"
        f'(function(){{var t=document.getElementById("{template_id}"),'
        f'e=document.getElementById("{escaped_id}");'
        f"if(t&&e){{e.innerHTML='';e.appendChild(t.content.cloneNode(true));t.remove();}}}})();"
        f"</script>"
    )


def find_dependent_blocks(template: Any, deferred_keys: Sequence[str]) -> list[str]:
    """Block names whose ``depends_on`` paths start with a deferred key.

    Blocks keep the order of *deferred_keys*; each block appears once.
    """
    key_to_blocks: dict[str, list[str]] = {}
    for block_name, block_meta in template.block_metadata().items():
        for dep_path in block_meta.depends_on:
            # "stats" matches dep path "stats" or "stats.count"
            root_key = dep_path.split(".")[0]
            if root_key in deferred_keys:
                key_to_blocks.setdefault(root_key, []).append(block_name)

    blocks: list[str] = []
    for key in deferred_keys:
        for block_name in key_to_blocks.get(key, ()):
            if block_name not in blocks:
                blocks.append(block_name)
    return blocks


class RenderHandle:
    """One in-flight render, created by ``render_view()``.

    The shell is already rendered when the handle exists. Deferred data
    is resolved by ``settle()``, called either up front (wait for all
    ready) or by the content stream after the shell was written.

    ``all_ready`` is set once the render settles, whether it completed,
    failed, or was aborted; ``failed`` tells them apart.
    """

    __slots__ = (
        "_aborted",
        "_bootstrap",
        "_chunks",
        "_on_error",
        "_pending",
        "_ready_context",
        "_scope",
        "_settled",
        "_shell",
        "_signal",
        "_template",
        "all_ready",
        "failed",
        "shell_ready",
    )

    def __init__(
        self,
        shell: str,
        template: Any,
        ready_context: dict[str, Any],
        pending: dict[str, Awaitable[Any]],
        *,
        bootstrap: Sequence[str] = (),
        on_error: ErrorCallback | None = None,
        signal: anyio.Event | None = None,
    ) -> None:
        self._shell = shell
        self._template = template
        self._ready_context = ready_context
        self._pending = pending
        self._bootstrap = tuple(bootstrap)
        self._on_error = on_error
        self._signal = signal
        self._chunks: list[str] = []
        self._scope: anyio.CancelScope | None = None
        self._settled = False
        self._aborted = False
        self.failed = False
        self.shell_ready = anyio.Event()
        self.shell_ready.set()
        self.all_ready = anyio.Event()

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self) -> None:
        """Cancel deferred resolution; the content stream ends early."""
        self._aborted = True
        if self._scope is not None:
            self._scope.cancel()

    async def settle(self) -> None:
        """Resolve deferred data and render dependent blocks, once.

        Never raises: errors (including ``RenderAborted``) are reported
        through ``on_error`` and the remaining content is dropped.
        """
        if self._settled:
            await self.all_ready.wait()
            return
        self._settled = True
        try:
            if self._aborted or (self._signal is not None and self._signal.is_set()):
                self._aborted = True
                raise RenderAborted("Render aborted before deferred data resolved")
            resolved = await self._resolve() if self._pending else {}
            if resolved:
                self._chunks.extend(self._render_deferred(resolved))
            self._chunks.extend(self._bootstrap)
        except Exception as exc:
            self.failed = True
            self._chunks.clear()
            await self._report(exc)
        finally:
            self._discard_pending()
            self.all_ready.set()

    async def chunks(self) -> AsyncIterator[bytes]:
        """Pull-based content stream: the shell, then everything deferred."""
        yield self._shell.encode("utf-8")
        await self.settle()
        for chunk in self._chunks:
            if self._aborted or (self._signal is not None and self._signal.is_set()):
                self._aborted = True
                return
            yield chunk.encode("utf-8")

    async def pipe(self, write: Write) -> None:
        """Push-based content stream: awaits ``write(chunk)`` per chunk."""
        async for chunk in self.chunks():
            await invoke(write, chunk)

    # -- Internals --

    async def _resolve(self) -> dict[str, Any]:
        resolved: dict[str, Any] = {}

        async def _resolve_one(key: str, awaitable: Awaitable[Any]) -> None:
            resolved[key] = await awaitable

        async def _watch(signal: anyio.Event) -> None:
            await signal.wait()
            self.abort()

        try:
            with anyio.CancelScope() as scope:
                self._scope = scope
                async with anyio.create_task_group() as tg:
                    if self._signal is not None:
                        tg.start_soon(_watch, self._signal)
                    async with anyio.create_task_group() as data_tg:
                        for key, awaitable in self._pending.items():
                            data_tg.start_soon(_resolve_one, key, awaitable)
                    # Settled: detach the abort watcher
                    tg.cancel_scope.cancel()
        except ExceptionGroup as group:
            raise unwrap_group(group) from None
        finally:
            self._scope = None

        if self._aborted:
            raise RenderAborted("Render aborted while resolving deferred data")
        return resolved

    def _render_deferred(self, resolved: dict[str, Any]) -> list[str]:
        full_context = {**self._ready_context, **resolved}
        chunks: list[str] = []
        for block_name in find_dependent_blocks(self._template, list(resolved)):
            block_html = self._template.render_block(block_name, full_context)
            chunks.append(format_swap_script(block_html, block_name))
        return chunks

    async def _report(self, error: Exception) -> None:
        if self._on_error is not None:
            await invoke(self._on_error, error)
        elif isinstance(error, RenderAborted):
            logger.debug("Render aborted: %s", error)
        else:
            logger.error("Error rendering deferred content", exc_info=error)

    def _discard_pending(self) -> None:
        # Close coroutines that never started so they don't warn
        for awaitable in self._pending.values():
            if inspect.iscoroutine(awaitable) and inspect.getcoroutinestate(awaitable) == inspect.CORO_CREATED:
                awaitable.close()


async def render_view(
    view: View,
    *,
    on_error: ErrorCallback | None = None,
    signal: anyio.Event | None = None,
    bootstrap_script_urls: Sequence[str] = (),
    bootstrap_data_script: str | None = None,
) -> RenderHandle:
    """Render the shell of *view* and return a handle to the rest.

    Errors while rendering the shell propagate to the caller.
    """
    if signal is not None and signal.is_set():
        raise RenderAborted("Render aborted before the shell was ready")

    ready, pending = split_context(view.context)
    shell_context = {**ready, **dict.fromkeys(pending)}
    try:
        shell = view.template.render(shell_context)
        if view.wrapper is not None:
            shell = view.wrapper.render({**view.wrapper_context, "content": Markup(shell)})
    except BaseException:
        for awaitable in pending.values():
            if inspect.iscoroutine(awaitable):
                awaitable.close()
        raise

    bootstrap = (
        bootstrap_scripts(bootstrap_script_urls, bootstrap_data_script)
        if bootstrap_script_urls
        else []
    )
    return RenderHandle(
        shell,
        view.template,
        ready,
        pending,
        bootstrap=bootstrap,
        on_error=on_error,
        signal=signal,
    )
