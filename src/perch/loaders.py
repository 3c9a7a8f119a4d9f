"""Module loaders — uniform async access to page modules.

Every module the server needs (view, server logic, app, document) is
described by a loader: a zero-argument callable returning an awaitable.
``to_loader`` normalizes whatever the caller supplied into that shape.

    to_loader(module)               # same value every call
    to_loader(lambda: import_it())  # re-invoked every call (hot reload)
    to_loader(fetch_module())       # awaited once, result shared
"""

import importlib
import importlib.util
import inspect
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from types import ModuleType
from typing import Any

import anyio

from perch._internal.invoke import invoke

type Loader[T] = Callable[[], Awaitable[T]]

_MISSING = object()


def to_loader[T](value: Any) -> Loader[T]:
    """Normalize *value* into a loader.

    - A callable is re-invoked on every call. Its result may be a plain
      value or an awaitable.
    - An awaitable is awaited once, the first time the loader runs. The
      result, or the exception, is shared by every later call.
    - Anything else is returned as-is on every call.
    """
    if callable(value) and not isinstance(value, ModuleType):

        async def call_loader() -> T:
            return await invoke(value)

        return call_loader

    if inspect.isawaitable(value):
        return _shared_awaitable(value)

    async def value_loader() -> T:
        return value

    return value_loader


def _shared_awaitable[T](awaitable: Awaitable[T]) -> Loader[T]:
    state: dict[str, Any] = {"result": _MISSING, "error": None, "lock": None}

    async def shared_loader() -> T:
        if state["lock"] is None:
            state["lock"] = anyio.Lock()
        async with state["lock"]:
            if state["result"] is _MISSING and state["error"] is None:
                try:
                    state["result"] = await awaitable
                except Exception as exc:
                    state["error"] = exc
        if state["error"] is not None:
            raise state["error"]
        return state["result"]

    return shared_loader


def memoize[T](loader: Loader[T]) -> Loader[T]:
    """Load once and share the result. Failures are not cached."""
    state: dict[str, Any] = {"result": _MISSING, "lock": None}

    async def memoized() -> T:
        if state["result"] is not _MISSING:
            return state["result"]
        if state["lock"] is None:
            state["lock"] = anyio.Lock()
        async with state["lock"]:
            if state["result"] is _MISSING:
                state["result"] = await loader()
        return state["result"]

    return memoized


def import_loader(name: str, *, reload: bool = False) -> Loader[ModuleType]:
    """A loader importing the dotted module path *name*.

    With ``reload=True`` the module is re-imported on every call so
    edits show up without restarting the process.
    """

    async def load() -> ModuleType:
        module = sys.modules.get(name)
        if module is None:
            return importlib.import_module(name)
        if reload:
            return importlib.reload(module)
        return module

    return load


def file_loader(path: str | Path, *, reload: bool = False) -> Loader[ModuleType]:
    """A loader executing the Python source file at *path* as a module.

    Used by filesystem discovery for per-page server logic. The module
    is cached after the first load unless ``reload`` is set.
    """
    path = Path(path).resolve()
    # Stable, import-safe name derived from the file location
    module_name = "perch_page_" + "_".join(
        part.replace("[", "").replace("]", "").replace("-", "_").replace(".", "_")
        for part in path.with_suffix("").parts[1:]
    )
    cache: dict[str, ModuleType] = {}

    async def load() -> ModuleType:
        if not reload and "module" in cache:
            return cache["module"]
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            msg = f"Cannot load module from {path}"
            raise ImportError(msg)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        cache["module"] = module
        return module

    return load
