"""
Fixed-size asyncio worker pool over a shared work queue.

Workers pull items until the queue is empty, buffer their results locally,
and merge them into the shared accumulator under one lock. The pool joins
every worker before returning. A unit that raises is logged and its item
skipped; sibling units keep running.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-005)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def run_pool(
    items: Iterable[T],
    unit: Callable[[T], Awaitable[R | None]],
    workers: int,
) -> list[R]:
    """Run ``unit`` over ``items`` with at most ``workers`` in flight.

    Args:
        items: Work items.
        unit: Coroutine function applied to each item. A None result
            contributes nothing.
        workers: Maximum number of concurrent units.

    Returns:
        list[R]: Non-None results in unspecified order.
    """
    if workers < 1:
        raise ValueError("workers must be >= 1")

    queue: asyncio.Queue[T] = asyncio.Queue()
    for item in items:
        queue.put_nowait(item)

    results: list[R] = []
    lock = asyncio.Lock()

    async def _worker(worker_id: int) -> None:
        local: list[R] = []
        while True:
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            try:
                result = await unit(item)
            except Exception:
                logger.exception("Worker %d: unit failed for item %r", worker_id, item)
                continue
            if result is not None:
                local.append(result)
        async with lock:
            results.extend(local)

    count = min(workers, queue.qsize())
    await asyncio.gather(*(_worker(i) for i in range(count)))
    return results
