"""
Cancellation tokens for user-initiated searches.

One token is created per search and passed explicitly to every operation that
may suspend. Replacing the current token (see CollaborationSearch) signals the
previous one.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from utils.errors import SearchCancelledError

T = TypeVar("T")


class CancellationToken:
    """Signalable flag with an awaitable view."""

    def __init__(self) -> None:
        self._event: asyncio.Event | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Signal the token. Idempotent."""
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise SearchCancelledError("Search was cancelled")

    async def wait(self) -> None:
        """Block until the token is signalled."""
        # Event is created lazily so tokens can be built outside a running loop
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await *awaitable* unless the token fires first.

        When the token wins, the awaitable's task is cancelled and
        SearchCancelledError is raised.
        """
        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()
        if work.done():
            return work.result()
        work.cancel()
        raise SearchCancelledError("Search was cancelled")


def ensure_token(token: CancellationToken | None) -> CancellationToken:
    """Return *token*, or a fresh never-signalled token when None."""
    return token if token is not None else CancellationToken()
