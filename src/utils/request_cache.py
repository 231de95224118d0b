"""
Two-tier response cache for TMDB requests.

Tier 1 (MemoryStore): process-lifetime dict, entries never expire.
Tier 2 (PersistentStore): Redis, one JSON blob per request URL:

    collab_request:{url} -> {"stored_at": <epoch millis>, "data": <payload>}

Persistent entries carry a 24 hour TTL. Expiry is checked lazily on read (the
Redis key expiry is only a backstop), and corrupt blobs are deleted and treated
as a miss. Every Redis failure is recovered locally: reads become misses and
writes are dropped.
"""

from __future__ import annotations

import json
import os
import time
from collections.abc import Callable
from typing import Any, Protocol, cast

from redis import Redis
from redis.exceptions import RedisError

from utils.errors import StorageError
from utils.get_logger import get_logger

logger = get_logger(__name__)

# 24 hours
REQUEST_CACHE_TTL = 24 * 60 * 60
REQUEST_CACHE_PREFIX = "collab_request"

# Returned by the stores on a miss when passed as ``default``
MISSING: Any = object()


class KeyValueClient(Protocol):
    """The subset of the Redis client used by PersistentStore."""

    def get(self, name: str) -> Any: ...

    def set(self, name: str, value: Any, ex: int | None = None) -> Any: ...

    def delete(self, *names: str) -> Any: ...


_redis_client: Redis | None = None


def get_redis_client() -> Redis:
    """Singleton accessor for the synchronous Redis client."""
    global _redis_client
    if _redis_client is None:
        host = os.getenv("REDIS_HOST", "localhost")
        port_str = os.getenv("REDIS_PORT", "6379")
        password = os.getenv("REDIS_PASSWORD") or None

        try:
            port = int(port_str)
        except ValueError:
            raise RuntimeError(f"Invalid REDIS_PORT value: {port_str!r}")

        _redis_client = Redis(
            host=host,
            port=port,
            password=password,
            decode_responses=True,
            socket_timeout=2,
            socket_connect_timeout=2,
        )
    return _redis_client


class MemoryStore:
    """Volatile tier. Keyed by request URL; entries live as long as the process."""

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()


class PersistentStore:
    """TTL-governed JSON blob store backed by Redis."""

    def __init__(
        self,
        client: KeyValueClient | None = None,
        ttl: int = REQUEST_CACHE_TTL,
        prefix: str = REQUEST_CACHE_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self.ttl = ttl
        self.prefix = prefix
        self._clock = clock

    @property
    def client(self) -> KeyValueClient:
        if self._client is None:
            self._client = cast(KeyValueClient, get_redis_client())
        return self._client

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def _now_millis(self) -> int:
        return int(self._clock() * 1000)

    def _raw_get(self, key: str) -> Any:
        try:
            return self.client.get(self._full_key(key))
        except (RedisError, OSError) as e:
            raise StorageError(f"Read failed for {key}: {e}") from e

    def _raw_set(self, key: str, blob: str) -> None:
        try:
            self.client.set(self._full_key(key), blob, ex=self.ttl)
        except (RedisError, OSError) as e:
            raise StorageError(f"Write failed for {key}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self.client.delete(self._full_key(key))
        except (RedisError, OSError) as e:
            logger.debug(f"Persistent cache delete failed for {key}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached payload, or ``default`` on miss, expiry, corruption or storage failure.

        A stored JSON null comes back as None, so callers that cache null
        payloads pass a sentinel ``default`` to tell the two apart.
        """
        try:
            raw = self._raw_get(key)
        except StorageError as e:
            logger.debug(str(e))
            return default
        if raw is None:
            return default

        try:
            if isinstance(raw, bytes):
                raw = raw.decode()
            entry = json.loads(raw)
            stored_at = int(entry["stored_at"])
            data = entry["data"]
        except (ValueError, TypeError, KeyError) as e:
            logger.debug(f"Corrupt persistent cache entry for {key}: {e}")
            self.remove(key)
            return default

        if self._now_millis() - stored_at > self.ttl * 1000:
            logger.debug(f"Persistent cache entry expired: {key}")
            self.remove(key)
            return default
        return data

    def set(self, key: str, data: Any) -> None:
        """Store ``data`` under ``key``. Best-effort: failures are logged and dropped."""
        try:
            blob = json.dumps({"stored_at": self._now_millis(), "data": data})
            self._raw_set(key, blob)
        except (StorageError, TypeError, ValueError) as e:
            logger.debug(f"Persistent cache write skipped for {key}: {e}")
