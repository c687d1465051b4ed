"""Async utilities for bridging blocking HTTP calls to the sync event loop."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Remote store calls are blocking ``requests`` calls; wrapping them keeps
    the debounce and poll timers responsive while a transfer is running.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        content = await run_sync(store.download, file_id)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
