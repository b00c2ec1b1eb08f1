"""
Concurrency-limited mapping over async work.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def map_with_concurrency_limit(
    items: Sequence[T],
    concurrency: int,
    fn: Callable[[T, int], Awaitable[R]],
) -> list[R]:
    """
    Apply an async function to every item with bounded concurrency.

    A fixed pool of min(concurrency, len(items)) workers claims indices in
    order; each index is processed exactly once. If any call raises, the
    remaining workers are cancelled and the exception propagates.

    Args:
        items: Inputs
        concurrency: Maximum calls in flight; values below 1 mean 1
        fn: Called as ``fn(item, index)``

    Returns:
        Outputs in input order
    """
    if not items:
        return []

    limit = max(1, min(concurrency, len(items)))
    results: list[R | None] = [None] * len(items)
    next_index = 0

    async def worker() -> None:
        nonlocal next_index
        while next_index < len(items):
            index = next_index
            next_index += 1
            results[index] = await fn(items[index], index)

    workers = [asyncio.create_task(worker()) for _ in range(limit)]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    return results  # type: ignore[return-value]
