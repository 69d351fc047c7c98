"""Bounded concurrent fan-out for per-message work."""

from __future__ import annotations
from typing import Awaitable, Callable, Iterable, List, TypeVar
import asyncio

T = TypeVar("T")
R = TypeVar("R")


async def bounded_map(
    func: Callable[[T], Awaitable[R]],
    items: Iterable[T],
    limit: int
) -> List[R]:
    """
    Apply `func` to every item concurrently, at most `limit` at a time.

    Results keep input order. The first exception cancels the remaining
    work and propagates.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def run(item: T) -> R:
        async with semaphore:
            return await func(item)

    tasks = [asyncio.ensure_future(run(item)) for item in items]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise
