"""
TTL result cache for external lookups.

Concurrent misses for the same key are not coalesced: each caller that misses
invokes the loader and the last writer wins.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Loader = Callable[[], Union[Any, Awaitable[Any]]]


@dataclass
class CacheEntry:
    """Cached value and the clock reading after which it is stale."""

    value: Any
    expires_at: float


class ResultCache:
    """Thread-safe key/value cache with per-entry expiry."""

    def __init__(self, default_ttl: float = 3600.0, clock: Optional[Clock] = None):
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = Lock()

    def get(self, key: str) -> Tuple[bool, Any]:
        """
        Look up a key.

        Returns:
            (hit, value). Expired entries are evicted and reported as a miss.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return False, None
            return True, entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    async def get_or_load(self, key: str, loader: Loader, ttl: Optional[float] = None) -> Any:
        """Return the cached value, or call the loader and cache what it returns."""
        hit, value = self.get(key)
        if hit:
            logger.debug(f"Cache hit for {key}")
            return value

        value = loader()
        if asyncio.iscoroutine(value) or isinstance(value, asyncio.Future):
            value = await value
        self.set(key, value, ttl)
        return value

    def invalidate(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
