"""
Bounded-concurrency runner for per-resource work.

The concurrency limit doubles as the outbound rate limit against the audited
site: with a limit of 1 each probe is awaited before the next one starts.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, List, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(items: Iterable[T], worker: Callable[[T], Awaitable[R]], concurrency: int = 1) -> List[R]:
    """Run ``worker`` over ``items`` with at most ``concurrency`` in flight; results keep input order."""
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    items = list(items)
    if concurrency == 1:
        return [await worker(item) for item in items]

    semaphore = asyncio.Semaphore(concurrency)

    async def _run(item: T) -> R:
        async with semaphore:
            return await worker(item)

    return list(await asyncio.gather(*(_run(item) for item in items)))
