"""In-process LRU cache backend with TTL.

Default backend for development, tests and single-instance deployments.
Bounded by max_entries (least recently used entries are evicted first).
Expired entries are dropped lazily on read and in bulk by sweep(), which
the AppContext runs periodically. Values are stored JSON-serialized, like
the Redis backend, so callers never share mutable objects with the cache.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class InMemoryCache:
    """Bounded LRU cache implementing CacheProtocol."""

    def __init__(
        self,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty cache.

        Args:
            max_entries: Upper bound on stored keys; oldest-used evicted first.
            clock: Monotonic seconds source (injectable for TTL tests).
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[str, float | None]] = OrderedDict()

    async def connect(self) -> None:
        logger.info("In-memory cache ready (max_entries=%s)", self.max_entries)

    async def disconnect(self) -> None:
        self._entries.clear()

    def is_available(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, expires_at: float | None) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache MISS: %s", key)
            return None
        serialized, expires_at = entry
        if self._is_expired(expires_at):
            del self._entries[key]
            logger.debug("Cache EXPIRED: %s", key)
            return None
        self._entries.move_to_end(key)
        logger.debug("Cache HIT: %s", key)
        return json.loads(serialized)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        if ttl is not None and ttl <= 0:
            self._entries.pop(key, None)
            return False
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError):
            logger.exception("Cache set error for key %s (value not JSON-serializable)", key)
            return False
        expires_at = self._clock() + ttl if ttl is not None else None
        self._entries[key] = (serialized, expires_at)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Cache EVICT: %s", evicted)
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        return True

    async def delete(self, key: str) -> bool:
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("Cache DELETE: %s", key)
        return removed

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching a glob pattern (Redis MATCH semantics for * and ?)."""
        matched = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
        for key in matched:
            del self._entries[key]
        if matched:
            logger.info("Cache INVALIDATE: %s (%s keys)", pattern, len(matched))
        return len(matched)

    def sweep(self) -> int:
        """Drop every expired entry; return how many were removed."""
        now = self._clock()
        expired = [
            key
            for key, (_, expires_at) in self._entries.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Cache SWEEP: %s expired entries removed", len(expired))
        return len(expired)
