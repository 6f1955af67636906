"""Cache protocol shared by the in-memory and Redis backends (DIP)."""

from typing import Any, Protocol


class CacheProtocol(Protocol):
    """Protocol for cache backends. Used by MemoCache.

    Implementations never raise on backend failure: reads degrade to None
    and writes report False.
    """

    async def connect(self) -> None:
        """Open connections; called once at startup."""
        ...

    async def disconnect(self) -> None:
        """Release connections; called once at shutdown."""
        ...

    def is_available(self) -> bool:
        """Return True if cache is connected and usable."""
        ...

    async def get(self, key: str) -> Any:
        """Return cached value or None."""
        ...

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store value with optional TTL in seconds. None means no expiry."""
        ...

    async def delete(self, key: str) -> bool:
        """Remove key from cache."""
        ...

    async def delete_pattern(self, pattern: str) -> int:
        """Remove every key matching a glob pattern; return the number removed."""
        ...
