"""In-process TTL + LRU cache.

Entries expire lazily on read and are also reclaimed by a background sweeper
thread. When the cache is full, the least recently read entry is evicted
before a new key is inserted.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from app.schemas import CacheStats

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    ttl: float = Field(300, gt=0)  # seconds
    max_size: int = Field(1000, gt=0)
    cleanup_interval: float = Field(60, gt=0)  # seconds


@dataclass
class CacheItem(Generic[T]):
    value: T
    timestamp: float
    ttl: float
    access_count: int = 0
    last_accessed: float = 0.0

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class CacheManager(Generic[T]):
    """
    Bounded key/value cache with per-entry TTL and LRU eviction.

    Every public method holds the instance lock, so calls are atomic with
    respect to each other and to the sweeper thread.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        *,
        ttl: Optional[float] = None,
        max_size: Optional[int] = None,
        cleanup_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        start_sweeper: bool = True,
        name: str = "cache",
    ):
        overrides = {
            k: v
            for k, v in {"ttl": ttl, "max_size": max_size, "cleanup_interval": cleanup_interval}.items()
            if v is not None
        }
        base = config if config is not None else CacheConfig()
        self.config = CacheConfig(**{**base.model_dump(), **overrides}) if overrides else base

        self.name = name
        self._clock = clock
        self._items: Dict[str, CacheItem[T]] = {}
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0

        if start_sweeper:
            self.start_sweeper()

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def set(self, key: str, value: T, custom_ttl: Optional[float] = None) -> None:
        """
        Store ``value`` under ``key``, evicting the LRU entry if the cache is full.

        ``custom_ttl`` is taken as given. A negative value stores an entry that
        is already expired; the next read or sweep drops it.
        """
        with self._lock:
            now = self._clock()
            if key not in self._items and len(self._items) >= self.config.max_size:
                self._evict_lru()
            self._items[key] = CacheItem(
                value=value,
                timestamp=now,
                ttl=custom_ttl if custom_ttl is not None else self.config.ttl,
                access_count=0,
                last_accessed=now,
            )

    def get(self, key: str, default: Optional[T] = None) -> Optional[T]:
        """
        Return the cached value, or ``default`` when missing or expired.

        A stored ``None`` is indistinguishable from a miss unless the caller
        passes its own sentinel as ``default``.
        """
        with self._lock:
            item = self._items.get(key)
            if item is None:
                self.misses += 1
                return default

            now = self._clock()
            if item.is_expired(now):
                del self._items[key]
                self.expirations += 1
                self.misses += 1
                return default

            item.access_count += 1
            item.last_accessed = now
            self.hits += 1
            return item.value

    def has(self, key: str) -> bool:
        """Existence check. Drops an expired entry but does not count as a read."""
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return False
            if item.is_expired(self._clock()):
                del self._items[key]
                self.expirations += 1
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._items.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        """Remove every key starting with ``prefix``; returns how many were removed."""
        with self._lock:
            doomed = [k for k in self._items if k.startswith(prefix)]
            for k in doomed:
                del self._items[k]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._items)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def get_stats(self) -> CacheStats:
        """
        Snapshot statistics.

        ``total_accesses`` and ``hit_rate`` only cover entries still stored;
        read history of evicted or expired entries is gone. The lifetime
        ``hits``/``misses`` counters are kept separately.
        """
        with self._lock:
            size = len(self._items)
            total_accesses = sum(item.access_count for item in self._items.values())
            average = total_accesses / size if size else 0.0
            return CacheStats(
                size=size,
                max_size=self.config.max_size,
                hit_rate=average,
                total_accesses=total_accesses,
                average_access_count=average,
                hits=self.hits,
                misses=self.misses,
                evictions=self.evictions,
                expirations=self.expirations,
            )

    # ------------------------------------------------------------------
    # Eviction and sweeping
    # ------------------------------------------------------------------

    def _evict_lru(self) -> None:
        if not self._items:
            return
        # min() keeps the first of equal candidates, i.e. the oldest insert
        oldest_key = min(self._items, key=lambda k: self._items[k].last_accessed)
        del self._items[oldest_key]
        self.evictions += 1
        logger.debug(f"[{self.name}] Evicted least recently used key {oldest_key!r}")

    def cleanup(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, item in self._items.items() if item.is_expired(now)]
            for k in expired:
                del self._items[k]
            self.expirations += len(expired)

        if expired:
            logger.info(f"[{self.name}] Cache cleanup: removed {len(expired)} expired items")
        return len(expired)

    def _sweep_loop(self) -> None:
        logger.info(f"[{self.name}] Cache sweeper started (every {self.config.cleanup_interval}s)")
        while not self._stop_event.wait(self.config.cleanup_interval):
            try:
                self.cleanup()
            except Exception:
                logger.exception(f"[{self.name}] Cache cleanup failed")
        logger.info(f"[{self.name}] Cache sweeper stopped")

    def start_sweeper(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name=f"{self.name}-sweeper", daemon=True
        )
        self._sweeper.start()

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def destroy(self) -> None:
        """Stop the sweeper thread and drop every entry. Safe to call twice."""
        self._stop_event.set()
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout=5)
        self.clear()

    def __enter__(self) -> "CacheManager[T]":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.destroy()
