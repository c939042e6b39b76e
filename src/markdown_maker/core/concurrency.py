"""Always-settle fan-out helpers for the build and export programs."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Iterable

from markdown_maker.errors import flatten_failures

__all__ = ["call_hook", "settle"]


async def call_hook(hook: Callable[..., Any], *args: Any) -> Any:
    """Call ``hook`` and await the result when it is awaitable."""

    result = hook(*args)
    if inspect.isawaitable(result):
        return await result
    return result


async def settle(awaitables: Iterable[Awaitable[Any]]) -> list[BaseException]:
    """Run every awaitable to completion and return the flattened failures.

    Nothing is cancelled when a sibling fails; cancellation of the caller
    still propagates.
    """

    results = await asyncio.gather(*awaitables, return_exceptions=True)
    failures: list[BaseException] = []
    for result in results:
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            failures.append(result)
    return flatten_failures(failures)
