"""Structured-concurrency helpers built on anyio task groups."""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import anyio


async def gather(*loaders: Callable[[], Awaitable[Any]]) -> list[Any]:
    """Start every loader together and wait for all of them.

    Results keep the order of *loaders*. When one loader fails the
    others are cancelled and the original exception is re-raised
    (not the task group's ``ExceptionGroup``) so callers see the same
    error they would get from awaiting the loader directly.
    """
    results: list[Any] = [None] * len(loaders)

    async def _run(index: int, loader: Callable[[], Awaitable[Any]]) -> None:
        results[index] = await loader()

    try:
        async with anyio.create_task_group() as tg:
            for index, loader in enumerate(loaders):
                tg.start_soon(_run, index, loader)
    except ExceptionGroup as group:
        raise unwrap_group(group) from None

    return results


def unwrap_group(group: BaseExceptionGroup) -> BaseException:
    """Return the single leaf exception of *group*, or the group itself."""
    leaves: Sequence[BaseException] = group.exceptions
    while len(leaves) == 1 and isinstance(leaves[0], BaseExceptionGroup):
        leaves = leaves[0].exceptions
    if len(leaves) == 1:
        return leaves[0]
    return group
