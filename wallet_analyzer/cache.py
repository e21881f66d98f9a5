import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class AnalysisCache(Protocol):
    """Keyed store for finished analyses and histories"""

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None: ...

    async def evict_expired(self) -> int: ...

    async def clear(self) -> None: ...


class TTLCache:
    """Simple in-memory TTL cache with LRU eviction.

    Expired entries are dropped lazily on lookup or by ``evict_expired``; there is
    no background sweep. The lock only guards the internal structure, so two
    concurrent misses for one key may both fetch.
    """

    def __init__(
        self,
        default_ttl: int = 300,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if self._clock() >= entry.expires_at:
                del self._cache[key]
                return None

            # Update access order for LRU
            self._cache.move_to_end(key)
            return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        async with self._lock:
            ttl = self.default_ttl if ttl is None else ttl
            self._cache[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
            self._cache.move_to_end(key)

            # Evict least recently used if over max size
            while len(self._cache) > self.max_size:
                self._cache.popitem(last=False)

    async def evict_expired(self) -> int:
        async with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._cache.items() if now >= entry.expires_at]
            for key in expired:
                del self._cache[key]
            return len(expired)

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()

    def size(self) -> int:
        return len(self._cache)


__all__ = ["AnalysisCache", "CacheEntry", "TTLCache"]
