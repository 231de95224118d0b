"""
Request Client - shared GET handling with two-tier caching, in-flight
deduplication, rate-limit retry and cancellation.

Every TMDB call goes through RequestClient.fetch_json. Lookup order per call:

1. volatile memory store
2. persistent (Redis) store, promoted into memory on hit
3. in-flight table: concurrent callers for the same key share one pending task
4. a new network call, registered in the in-flight table until it completes

The caches and the in-flight table are class-level, so all clients in the
process share them.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import aiohttp

from utils.cancellation import CancellationToken, ensure_token
from utils.errors import NetworkError
from utils.get_logger import get_logger
from utils.rate_limiter import get_rate_limiter
from utils.request_cache import MISSING, MemoryStore, PersistentStore

logger = get_logger(__name__)

# One original attempt plus one retry after HTTP 429
MAX_ATTEMPTS = 2
RATE_LIMIT_DEFAULT_WAIT = 1.0
RATE_LIMIT_MAX_WAIT = 3.0


def _skip_rate_limiting() -> bool:
    # Unit tests mock the network; pacing them only slows the suite down
    return os.getenv("ENVIRONMENT", "").lower() == "test"


def build_request_key(url: str, params: dict[str, Any] | None = None) -> str:
    """Build the cache/dedup key: the URL with every query parameter, sorted."""
    if not params:
        return url
    normalized = []
    for name in sorted(params):
        value = params[name]
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        normalized.append((name, value))
    if not normalized:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(normalized)}"


def retry_after_seconds(header_value: str | None) -> float:
    """Wait before retrying a 429: the advisory value (default 1s), at most 3s."""
    wait = RATE_LIMIT_DEFAULT_WAIT
    if header_value is not None:
        try:
            wait = float(header_value)
        except (TypeError, ValueError):
            wait = RATE_LIMIT_DEFAULT_WAIT
    return min(RATE_LIMIT_MAX_WAIT, max(0.0, wait))


@dataclass
class InFlightRequest:
    """A pending network call and the number of callers waiting on it."""

    task: asyncio.Task
    waiters: int = 0


class RequestClient:
    """
    JSON GET client shared by the TMDB services.
    Provides caching, deduplication, rate limiting and 429 retry.
    """

    _memory: MemoryStore = MemoryStore()
    _persistent: PersistentStore | None = None
    _in_flight: dict[str, InFlightRequest] = {}

    def __init__(
        self,
        headers: dict[str, str] | None = None,
        timeout: float = 20,
        rate_limit_max: int = 35,
        rate_limit_period: float = 1.0,
    ):
        self.headers = headers or {}
        self.timeout = timeout
        self.rate_limit_max = rate_limit_max
        self.rate_limit_period = rate_limit_period

    @classmethod
    def configure_persistent_store(cls, store: PersistentStore | None) -> None:
        """Install (or remove, with None) the process-wide persistent tier."""
        cls._persistent = store

    @classmethod
    def reset_shared_state(cls) -> None:
        """Drop the memory tier and forget in-flight calls. Used by tests and the CLI."""
        cls._memory.clear()
        cls._in_flight.clear()

    async def fetch_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        token: CancellationToken | None = None,
        use_persistent: bool = True,
    ) -> Any:
        """Fetch a JSON payload through the cache, dedup and retry layers.

        Args:
            url: Full endpoint URL
            params: Query parameters; they are part of the cache key
            token: Cancellation token of the calling search
            use_persistent: Read and write the persistent tier (default: True)

        Returns:
            Parsed JSON payload

        Raises:
            NetworkError: Non-success HTTP status (after one 429 retry) or transport failure
            SearchCancelledError: The token was signalled before or while waiting
        """
        token = ensure_token(token)
        token.raise_if_cancelled()
        key = build_request_key(url, params)

        data = self._memory.get(key, MISSING)
        if data is not MISSING:
            logger.debug(f"Memory hit: {key}")
            return data

        persistent = self._persistent
        if use_persistent and persistent is not None:
            data = persistent.get(key, MISSING)
            if data is not MISSING:
                logger.debug(f"Persistent hit: {key}")
                self._memory.set(key, data)
                return data

        # Lookup-or-create has no await in between, so two callers cannot both
        # believe they are first
        entry = self._in_flight.get(key)
        if entry is None:
            task = asyncio.create_task(self._fetch_and_store(key, use_persistent))
            task.add_done_callback(_consume_task_result)
            entry = InFlightRequest(task=task)
            self._in_flight[key] = entry
            logger.debug(f"Issuing request: {key}")
        else:
            logger.debug(f"Joining in-flight request: {key}")

        return await self._wait_for(key, entry, token)

    async def _wait_for(self, key: str, entry: InFlightRequest, token: CancellationToken) -> Any:
        entry.waiters += 1
        try:
            return await token.guard(asyncio.shield(entry.task))
        finally:
            entry.waiters -= 1
            if entry.waiters == 0 and not entry.task.done():
                # Every caller has given up on this request
                logger.debug(f"Aborting abandoned request: {key}")
                entry.task.cancel()
                if self._in_flight.get(key) is entry:
                    del self._in_flight[key]

    async def _fetch_and_store(self, key: str, use_persistent: bool) -> Any:
        try:
            data = await self._request_with_retry(key)
            self._memory.set(key, data)
            persistent = self._persistent
            if use_persistent and persistent is not None:
                persistent.set(key, data)
            return data
        finally:
            entry = self._in_flight.get(key)
            if entry is not None and entry.task is asyncio.current_task():
                del self._in_flight[key]

    async def _request_with_retry(self, key: str) -> Any:
        for attempt in range(MAX_ATTEMPTS):
            status, headers, payload = await self._send(key)

            if status == 429 and attempt < MAX_ATTEMPTS - 1:
                wait_time = retry_after_seconds(headers.get("Retry-After"))
                logger.warning(f"Rate limit hit for {key}. Waiting {wait_time:.2f}s before retry...")
                await asyncio.sleep(wait_time)
                continue

            if status != 200:
                if status == 404:
                    logger.debug(f"API returned status 404 for {key} (resource not found)")
                else:
                    logger.warning(f"API returned status {status} for {key}")
                raise NetworkError(status, key)

            return payload

        # Loop always returns or raises on its last attempt
        raise NetworkError(429, key)

    async def _send(self, url: str) -> tuple[int, dict[str, str], Any]:
        """Perform one GET. Returns (status, headers, payload); payload is None unless 200."""
        request_timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            if _skip_rate_limiting():
                return await self._get(url, request_timeout)
            async with get_rate_limiter(self.rate_limit_max, self.rate_limit_period):
                return await self._get(url, request_timeout)
        except (TimeoutError, aiohttp.ClientError) as e:
            logger.warning(f"Request to {url} failed: {type(e).__name__}: {e}")
            raise NetworkError(None, url, f"Transport error for {url}: {e}") from e

    async def _get(
        self, url: str, request_timeout: aiohttp.ClientTimeout
    ) -> tuple[int, dict[str, str], Any]:
        async with (
            aiohttp.ClientSession() as session,
            session.get(url, headers=self.headers, timeout=request_timeout) as response,
        ):
            status = response.status
            headers = dict(response.headers)
            if status != 200:
                await response.read()
                return status, headers, None
            try:
                payload = await response.json(content_type=None)
            except ValueError as e:
                raise NetworkError(status, url, f"Invalid JSON for {url}: {e}") from e
            return status, headers, payload


def _consume_task_result(task: asyncio.Task) -> None:
    # Failures are delivered to waiters; a task nobody awaits any more must not
    # log "exception was never retrieved"
    if not task.cancelled():
        task.exception()

