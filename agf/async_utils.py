"""Blocking entry points over the async engine."""
from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Awaitable, TypeVar

T = TypeVar("T")


def run_sync(main: Awaitable[T]) -> T:
    """Run ``main`` on a private event loop and return its result.

    Unlike ``asyncio.run`` the loop's worker threads are not joined on exit:
    a thread still stuck in a timed-out adapter keeps running in the
    background instead of holding the caller past the timeout.
    """
    loop = asyncio.new_event_loop()
    executor = ThreadPoolExecutor(thread_name_prefix="agf-worker")
    loop.set_default_executor(executor)
    try:
        return loop.run_until_complete(main)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()
