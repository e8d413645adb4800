"""
async_utils.py - Event-loop helpers for the assembly pipeline.

The CLI and `assemble_sync` have no loop of their own and use `run_async_safely`.
Template and directory reads are blocking and go through `run_blocking` so
the engine can gather them concurrently.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_async_safely(awaitable: Awaitable[T]) -> T:
    """Drive `awaitable` to completion from synchronous code.

    Inside an already running loop (a notebook, an async host) the work moves
    to a private loop on a helper thread instead of failing.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(awaitable)

    logger.warning("Synchronous assembly requested inside a running event loop; using a helper thread")
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="srswriter-sync") as helper:
        return helper.submit(asyncio.run, awaitable).result()


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking callable in the default executor."""
    return await asyncio.get_running_loop().run_in_executor(None, functools.partial(func, *args, **kwargs))
