"""
Background runner for fire-and-forget requests
Each task drives its own event loop on a worker thread; results are folded
into session state later, on the script thread
"""

import asyncio
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="syllabus-bg")


def run_sync(coro: Awaitable) -> Any:
    """Run a coroutine to completion from synchronous (script) code"""
    return asyncio.run(coro)


def submit(name: str, coro_factory: Callable[[], Awaitable]) -> Future:
    """Start a coroutine on a worker thread and return its Future"""
    def runner():
        logger.info(f"Background task started: {name}")
        result = asyncio.run(coro_factory())
        logger.info(f"Background task finished: {name}")
        return result

    return _executor.submit(runner)
