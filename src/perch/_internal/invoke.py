"""Invoke helpers — call sync or async hooks uniformly.

Page hooks can be ``def`` or ``async def``. Any code that calls a
user-provided hook must handle both cases. This module provides a
single helper so the sync/async check lives in exactly one place.

Usage::

    from perch._internal.invoke import invoke

    result = await invoke(hook, context)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable.

    Works with both sync and async callables::

        def get_server_side_props(ctx):
            return ServerSideProps(props={"name": "perch"})

        async def get_server_side_props(ctx):
            return ServerSideProps(props=await load(ctx.params["id"]))
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
