from collections.abc import Callable
from dataclasses import dataclass
from threading import RLock
from time import time
from typing import Generic
from typing import TypeVar


T = TypeVar("T")


def now_millis() -> int:
    return int(time() * 1000)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    ts: int


class TTLCache(Generic[T]):
    """In-memory cache whose entries go stale `ttl_ms` after they were stored.

    Stale entries are never evicted in the background; they are only replaced
    by the next `put` for the same key.
    """

    def __init__(
        self, ttl_ms: int = 3_600_000, clock: Callable[[], int] = now_millis
    ) -> None:
        self.ttl_ms = max(0, ttl_ms)
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._lock = RLock()

    def get(self, key: str) -> T | None:
        """Return the fresh value stored under key, or None."""

        with self._lock:
            entry = self._entries.get(key)
        if entry is None or not self.is_fresh(entry):
            return None
        return entry.data

    def put(self, key: str, data: T) -> CacheEntry[T]:
        entry = CacheEntry(data=data, ts=self._clock())
        with self._lock:
            self._entries[key] = entry
        return entry

    def is_fresh(self, entry: CacheEntry[T]) -> bool:
        return self._clock() - entry.ts < self.ttl_ms

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
