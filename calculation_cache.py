# calculation_cache.py
import hashlib
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from config import config
from orbital_layout import LayoutResult
from scaling_policy import ScalingPolicy
from solarsystem import SystemSnapshot


def estimate_layout_size(result) -> int:
    """Rough memory footprint of a cached layout, in bytes."""
    count = len(result) if hasattr(result, '__len__') else 1
    return config.Cache.BASE_ENTRY_BYTES + config.Cache.BYTES_PER_OBJECT * count + config.Cache.KEY_OVERHEAD_BYTES


@dataclass
class CacheEntry:
    key: str
    view_mode: str
    result: LayoutResult
    inserted_at: float
    last_accessed: float
    size_estimate: int
    access_count: int = 0


@dataclass(frozen=True)
class CacheStatistics:
    total_entries: int
    hits: int
    misses: int
    hit_rate: float
    miss_rate: float
    memory_usage: int
    max_memory: int
    evictions: int
    oldest_entry: Optional[float]
    newest_entry: Optional[float]


class CalculationCache:
    """Memoizes layout results with LRU eviction on entry count and estimated memory.

    Both limits hold after every write: entries are evicted least-recently-used
    first until the cache fits. Every mutation (including the recency update on
    a hit) happens under one lock, so concurrent readers and writers are safe.

    Args:
        max_entries: Entry limit. Defaults to `config.Cache.MAX_ENTRIES`.
        max_memory_bytes: Memory limit. Defaults to `config.Cache.MAX_MEMORY_MB`.
        size_estimator: Maps a result to its estimated size in bytes.
        clock: Wall-clock source for entry timestamps.
    """

    def __init__(self, max_entries: Optional[int] = None, max_memory_bytes: Optional[int] = None,
                 size_estimator: Callable[[object], int] = estimate_layout_size, clock=time.time):
        self.max_entries = config.Cache.MAX_ENTRIES if max_entries is None else max_entries
        self.max_memory_bytes = int(config.Cache.MAX_MEMORY_MB * 1024 * 1024) if max_memory_bytes is None else max_memory_bytes
        self._size_estimator = size_estimator
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._memory_usage = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._lock = threading.Lock()

    # --- Keys ---
    @staticmethod
    def generate_key(view_mode: str, snapshot: SystemSnapshot, policy: ScalingPolicy) -> str:
        """Deterministic key: view mode, object-set fingerprint and config fingerprint.

        The object-set part quotes the object count and a sorted sample of ids
        (readable in logs) plus a digest of the full structure, so two systems
        sharing the sample never collide.
        """
        sample = ','.join(sorted(snapshot.ids)[:config.Cache.KEY_ID_SAMPLE_SIZE])
        config_digest = hashlib.md5(repr(policy.fingerprint()).encode('utf-8')).hexdigest()[:12]
        return f"{view_mode}|{len(snapshot)}:{sample}:{snapshot.fingerprint()[:12]}|{config_digest}"

    # --- Lookup ---
    def get(self, key: str) -> Optional[LayoutResult]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                if config.Debug.CACHE:
                    logging.debug(f"Cache miss: {key}")
                return None
            self._hits += 1
            entry.last_accessed = self._clock()
            entry.access_count += 1
            self._entries.move_to_end(key)
            return entry.result

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __contains__(self, key) -> bool:
        return self.has(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def set(self, key: str, result: LayoutResult, view_mode: Optional[str] = None):
        """Stores a result, then evicts LRU entries until both limits hold.

        A result whose estimate alone exceeds the memory limit is not retained;
        the cache logs a warning and the caller keeps using the result it has.
        """
        view_mode = view_mode if view_mode is not None else key.split('|', 1)[0]
        size = int(self._size_estimator(result))
        now = self._clock()
        with self._lock:
            previous = self._entries.pop(key, None)
            if previous is not None:
                self._memory_usage -= previous.size_estimate

            if size > self.max_memory_bytes:
                logging.warning(f"Layout for '{view_mode}' ({size} bytes) exceeds the cache budget "
                                f"of {self.max_memory_bytes} bytes; not cached.")
                return

            self._entries[key] = CacheEntry(key, view_mode, result, now, now, size)
            self._memory_usage += size
            self._evict_lru()

    def _evict_lru(self):
        while self._entries and (len(self._entries) > self.max_entries
                                 or self._memory_usage > self.max_memory_bytes):
            key, entry = self._entries.popitem(last=False)
            self._memory_usage -= entry.size_estimate
            self._evictions += 1
            if config.Debug.CACHE:
                logging.debug(f"Evicted cache entry {key} ({entry.size_estimate} bytes).")

    # --- Invalidation ---
    def clear(self):
        with self._lock:
            self._entries.clear()
            self._memory_usage = 0
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def clear_for_view_mode(self, view_mode: str) -> int:
        """Drops only the entries computed for one view mode. Returns the number removed."""
        with self._lock:
            doomed = [key for key, entry in self._entries.items() if entry.view_mode == view_mode]
            for key in doomed:
                self._memory_usage -= self._entries.pop(key).size_estimate
        if doomed:
            logging.info(f"Cleared {len(doomed)} cached layout(s) for view mode '{view_mode}'.")
        return len(doomed)

    def evict_older_than(self, max_age_seconds: float) -> int:
        """Drops entries inserted more than `max_age_seconds` ago. Returns the number removed."""
        cutoff = self._clock() - max_age_seconds
        with self._lock:
            doomed = [key for key, entry in self._entries.items() if entry.inserted_at < cutoff]
            for key in doomed:
                self._memory_usage -= self._entries.pop(key).size_estimate
            self._evictions += len(doomed)
        return len(doomed)

    # --- Introspection ---
    def get_statistics(self) -> CacheStatistics:
        with self._lock:
            lookups = self._hits + self._misses
            inserted = [entry.inserted_at for entry in self._entries.values()]
            return CacheStatistics(
                total_entries=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / lookups if lookups else 0.0,
                miss_rate=self._misses / lookups if lookups else 0.0,
                memory_usage=self._memory_usage,
                max_memory=self.max_memory_bytes,
                evictions=self._evictions,
                oldest_entry=min(inserted) if inserted else None,
                newest_entry=max(inserted) if inserted else None,
            )

    def memory_breakdown(self) -> Dict[str, int]:
        """Estimated bytes held per view mode."""
        breakdown: Dict[str, int] = {}
        with self._lock:
            for entry in self._entries.values():
                breakdown[entry.view_mode] = breakdown.get(entry.view_mode, 0) + entry.size_estimate
        return breakdown
