"""Memoization cache: get/set/delete plus single-flight get_or_compute.

Wraps a CacheProtocol backend (InMemoryCache or RedisCache). Concurrent
get_or_compute calls for the same cold key share one in-flight task, so
compute runs once per key per process until the entry expires. A computed
value of None is returned but never stored.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from app.infrastructure.cache.cache_protocol import CacheProtocol

logger = logging.getLogger(__name__)

# Passed as ttl_seconds to mean "use default_ttl"; None means no expiry.
DEFAULT_TTL: Any = object()


class MemoCache:
    """Key-value memoization over a pluggable cache backend."""

    def __init__(self, backend: CacheProtocol, default_ttl: int | None = 300) -> None:
        """Initialize with a backend.

        Args:
            backend: Storage backend (connect/disconnect are managed by the caller).
            default_ttl: TTL in seconds applied when callers omit ttl_seconds.
        """
        self.backend = backend
        self.default_ttl = default_ttl
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None when absent, expired or the backend fails."""
        return await self.backend.get(key)

    async def set(self, key: str, value: Any, ttl_seconds: int | None = DEFAULT_TTL) -> bool:
        """Store value. Omitting ttl_seconds uses default_ttl; None never expires."""
        ttl = self.default_ttl if ttl_seconds is DEFAULT_TTL else ttl_seconds
        return await self.backend.set(key, value, ttl=ttl)

    async def delete(self, key: str) -> bool:
        return await self.backend.delete(key)

    async def invalidate_pattern(self, pattern: str) -> int:
        """Delete every entry matching a glob pattern (e.g. search:school-1:reg-1:*)."""
        return await self.backend.delete_pattern(pattern)

    async def invalidate_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix."""
        return await self.backend.delete_pattern(f"{prefix}*")

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        ttl_seconds: int | None = DEFAULT_TTL,
    ) -> Any:
        """Return the cached value for key, computing and storing it on a miss.

        Only one compute runs per cold key at a time; other callers await
        the same task. Cancelling one waiter does not cancel the shared
        computation. Exceptions from compute propagate to every waiter and
        nothing is stored.
        """
        cached = await self.backend.get(key)
        if cached is not None:
            return cached
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._compute_and_store(key, compute, ttl_seconds))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._on_done(k, t))
        else:
            logger.debug("Cache JOIN in-flight compute: %s", key)
        return await asyncio.shield(task)

    async def _compute_and_store(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        ttl_seconds: int | None,
    ) -> Any:
        value = await compute()
        if value is not None:
            await self.set(key, value, ttl_seconds)
        return value

    def _on_done(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Compute for %s failed: %s", key, task.exception())
