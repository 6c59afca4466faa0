"""Bounded, time-expiring in-memory caches.

Used for resolved metadata, thumbnail bytes and stream URLs. Nothing here is
correctness-critical: any cache can be cleared or swapped for NullCache.
"""

import time
from typing import Any, Callable, Hashable, Optional, Protocol, runtime_checkable


@runtime_checkable
class CacheProtocol(Protocol):
    def get(self, key: Hashable) -> Optional[Any]: ...
    def set(self, key: Hashable, value: Any) -> None: ...
    def delete(self, key: Hashable) -> None: ...
    def clear(self) -> None: ...


class TTLCache:
    """key -> value map with a per-entry TTL and a capacity ceiling.

    When full, expired entries are purged first; if still full the
    least-recently-inserted entry is evicted.
    """

    def __init__(self, max_entries: int = 500, ttl: float = 3600.0,
                 clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self.ttl = ttl
        self._clock = clock
        self._data: dict[Hashable, tuple[float, Any]] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires, value = entry
        if expires <= self._clock():
            del self._data[key]
            return None
        return value

    def set(self, key: Hashable, value: Any) -> None:
        # Re-inserting moves the key to the back of the eviction order
        self._data.pop(key, None)
        if len(self._data) >= self.max_entries:
            self._purge_expired()
        while len(self._data) >= self.max_entries:
            oldest = next(iter(self._data))
            del self._data[oldest]
        self._data[key] = (self._clock() + self.ttl, value)

    def delete(self, key: Hashable) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def _purge_expired(self) -> None:
        now = self._clock()
        stale = [k for k, (expires, _) in self._data.items() if expires <= now]
        for k in stale:
            del self._data[k]

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None


class NullCache:
    """Cache that never stores anything."""

    def get(self, key: Hashable) -> Optional[Any]:
        return None

    def set(self, key: Hashable, value: Any) -> None:
        pass

    def delete(self, key: Hashable) -> None:
        pass

    def clear(self) -> None:
        pass

    def __len__(self) -> int:
        return 0
