"""
Bounded-concurrency helpers.

map_limit runs one async task per input item with at most ``limit`` tasks active
at once. Workers share a cursor over the input, so a worker that finishes early
claims the next unclaimed item instead of waiting on a pre-assigned batch.

Usage:
    from utils.concurrency import map_limit

    async def fetch(season_number: int) -> dict:
        ...

    results = await map_limit([1, 2, 3, 4], 2, fetch)
    # results[i] corresponds to items[i] regardless of completion order
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Generic, TypeVar

from utils.get_logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def map_limit(
    items: Sequence[T], limit: int, task: Callable[[T], Awaitable[R]]
) -> list[R]:
    """Run ``task`` over ``items`` with bounded parallelism.

    Args:
        items: Input sequence
        limit: Maximum simultaneously active tasks (values below 1 act as 1)
        task: Coroutine function applied to each item

    Returns:
        One result per input item, in input order

    Raises:
        The first exception raised by any invocation of ``task``. Invocations
        already running are not cancelled; their results are discarded and no
        worker claims further items after the failure.
    """
    count = len(items)
    if count == 0:
        return []

    results: list[R | None] = [None] * count
    cursor = 0
    failed = False

    async def worker() -> None:
        nonlocal cursor, failed
        while cursor < count and not failed:
            # Claiming an index has no await between check and increment
            index = cursor
            cursor += 1
            try:
                results[index] = await task(items[index])
            except BaseException:
                failed = True
                raise

    workers = [worker() for _ in range(min(max(limit, 1), count))]
    await asyncio.gather(*workers)
    return results  # type: ignore[return-value]


class MatchCell(Generic[T]):
    """Single-assignment result cell shared by concurrent scan workers.

    The first value offered wins; later offers are ignored. Workers poll
    ``is_set`` before starting new work, which makes early exit best-effort:
    work already in flight when the cell is filled still runs to completion.
    """

    def __init__(self) -> None:
        self._value: T | None = None
        self._set = False

    @property
    def is_set(self) -> bool:
        return self._set

    @property
    def value(self) -> T | None:
        return self._value

    def offer(self, value: T) -> bool:
        """Record ``value`` if the cell is still empty. Returns True when recorded."""
        if self._set:
            logger.debug("Match already recorded, ignoring later match")
            return False
        self._value = value
        self._set = True
        return True
