"""In-process adaptive cache with scored eviction, tags and optional compression.

Entries carry a priority (LOW..CRITICAL), tags, access counters and a size
estimate. When the cache is full, entries are ranked by an eviction score that
favours high priority, frequently and recently used, young and small entries;
the lowest scores are evicted first until enough room is freed and occupancy
drops below 90% of max_size.

Expiry is lazy on read and swept periodically by the application scheduler
(see main.py), which calls clear_expired().
"""

import json
import logging
import threading
import time
import zlib
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterable

from venuescout.config import settings
from venuescout.services.config import discovery_config

logger = logging.getLogger(__name__)

ev = discovery_config.eviction


class CachePriority(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


@dataclass
class CacheEntry:
    data: Any
    timestamp: float
    ttl: float                      # seconds
    priority: CachePriority = CachePriority.MEDIUM
    tags: frozenset[str] = field(default_factory=frozenset)
    access_count: int = 0
    last_access: float = 0.0
    size_bytes: int = 0
    compressed: bool = False

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl

    def eviction_score(self, now: float) -> float:
        minutes_idle = (now - self.last_access) / 60
        minutes_old = (now - self.timestamp) / 60
        score = (
            self.priority * ev.priority_weight
            + min(self.access_count * ev.access_weight, ev.access_cap)
            + max(0.0, ev.recency_ceiling - minutes_idle)
            - min(minutes_old, ev.age_cap)
            - min(self.size_bytes / ev.size_divisor, ev.size_cap)
        )
        return max(0.0, score)


class AdaptiveCache:
    """Thread-safe TTL cache. Operations log and swallow internal errors."""

    def __init__(
        self,
        max_size: int = settings.cache_max_size,
        default_ttl: float = settings.cache_default_ttl_seconds,
        enable_compression: bool = settings.cache_compression_enabled,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.enable_compression = enable_compression

        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.total_requests = 0
        self.last_cleanup: float | None = None

    # ---------- Core operations ----------

    def set(
        self,
        key: str,
        data: Any,
        ttl: float | None = None,
        priority: CachePriority | int = CachePriority.MEDIUM,
        tags: Iterable[str] = (),
        compress: bool | None = None,
    ) -> bool:
        """Store a value. Returns False if the value could not be stored."""
        try:
            with self._lock:
                now = time.time()
                payload, compressed = self._encode(data, self.enable_compression if compress is None else compress)
                size = self._estimate_size(data)

                if key not in self._entries and len(self._entries) >= self.max_size:
                    self._evict(size, now)

                self._entries[key] = CacheEntry(
                    data=payload,
                    timestamp=now,
                    ttl=self.default_ttl if ttl is None else float(ttl),
                    priority=CachePriority(int(priority)),
                    tags=frozenset(tags),
                    last_access=now,
                    size_bytes=size,
                    compressed=compressed,
                )
                logger.debug(f"Cache set {key} ({size} bytes, priority={int(priority)})")
                return True
        except Exception as e:
            logger.warning(f"Cache set failed for {key}: {e}")
            return False

    def get(self, key: str) -> Any | None:
        """Return the cached value or None on miss/expiry."""
        with self._lock:
            self.total_requests += 1
            entry = self._live_entry(key, time.time())
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            entry.access_count += 1
            entry.last_access = time.time()
            try:
                return self._decode(entry)
            except Exception as e:
                logger.warning(f"Cache entry {key} unreadable, dropping: {e}")
                del self._entries[key]
                return None

    def has(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key, time.time()) is not None

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._reset_counters()

    def clear_expired(self) -> int:
        """Drop every expired entry. Safe to call repeatedly."""
        with self._lock:
            now = time.time()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self.last_cleanup = now
        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    def clear_by_tags(self, tags: Iterable[str]) -> int:
        wanted = set(tags)
        with self._lock:
            doomed = [k for k, e in self._entries.items() if e.tags & wanted]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    # ---------- Introspection / tuning ----------

    def get_with_metadata(self, key: str) -> dict | None:
        with self._lock:
            data = self.get(key)
            entry = self._entries.get(key)
            if entry is None:
                return None
            now = time.time()
            return {
                "data": data,
                "metadata": {
                    "timestamp": entry.timestamp,
                    "ttl": entry.ttl,
                    "priority": int(entry.priority),
                    "tags": sorted(entry.tags),
                    "access_count": entry.access_count,
                    "size_bytes": entry.size_bytes,
                    "compressed": entry.compressed,
                    "age_seconds": round(now - entry.timestamp, 3),
                    "ttl_remaining": round(max(0.0, entry.ttl - (now - entry.timestamp)), 3),
                },
            }

    def update_ttl(self, key: str, ttl: float) -> bool:
        """Set a new TTL and restart the entry's lifetime."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.ttl = float(ttl)
            entry.timestamp = time.time()
            return True

    def update_priority(self, key: str, priority: CachePriority | int) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.priority = CachePriority(int(priority))
            return True

    def get_entries_by_priority(self, priority: CachePriority | int) -> list[str]:
        with self._lock:
            return sorted(k for k, e in self._entries.items() if e.priority == int(priority))

    def optimize(self) -> dict:
        """Clear expired entries and re-derive priorities from usage."""
        expired = self.clear_expired()
        changed = 0
        with self._lock:
            now = time.time()
            for entry in self._entries.values():
                if entry.access_count > ev.optimize_high_access:
                    new = CachePriority.HIGH
                elif entry.access_count > ev.optimize_medium_access or now - entry.timestamp < ev.optimize_recent_seconds:
                    new = CachePriority.MEDIUM
                else:
                    new = CachePriority.LOW
                if new != entry.priority:
                    entry.priority = new
                    changed += 1
        logger.info(f"Cache optimized: {expired} expired removed, {changed} priorities adjusted")
        return {"expired_removed": expired, "priorities_adjusted": changed}

    def get_stats(self) -> dict:
        with self._lock:
            total_size = sum(e.size_bytes for e in self._entries.values())
            distribution = {p.name.lower(): 0 for p in CachePriority}
            for e in self._entries.values():
                distribution[e.priority.name.lower()] += 1
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
                "total_requests": self.total_requests,
                "total_size": total_size,
                "hit_rate": round(self.hits / self.total_requests * 100, 2) if self.total_requests else 0.0,
                "memory_usage_mb": round(total_size / (1024 * 1024), 3),
                "last_cleanup": self.last_cleanup,
                "priority_distribution": distribution,
            }

    def export_state(self) -> dict:
        with self._lock:
            now = time.time()
            entries = [
                {
                    "key": key,
                    "priority": int(e.priority),
                    "tags": sorted(e.tags),
                    "access_count": e.access_count,
                    "size_bytes": e.size_bytes,
                    "age_seconds": round(now - e.timestamp, 3),
                    "ttl": e.ttl,
                    "expired": e.is_expired(now),
                    "eviction_score": round(e.eviction_score(now), 2),
                }
                for key, e in self._entries.items()
            ]
            return {"stats": self.get_stats(), "entries": entries}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ---------- Internals ----------

    def _live_entry(self, key: str, now: float) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(now):
            del self._entries[key]
            return None
        return entry

    def _evict(self, needed: int, now: float) -> None:
        ranked = sorted(self._entries.items(), key=lambda kv: (kv[1].eviction_score(now), kv[1].timestamp))
        freed = 0
        target = self.max_size * ev.target_occupancy
        for key, entry in ranked:
            if freed >= needed and len(self._entries) < target:
                break
            del self._entries[key]
            freed += entry.size_bytes
            self.evictions += 1
        logger.debug(f"Cache evicted down to {len(self._entries)} entries ({freed} bytes freed)")

    @staticmethod
    def _encode(data: Any, compress: bool) -> tuple[Any, bool]:
        if not compress:
            return data, False
        try:
            raw = json.dumps(data).encode("utf-8")
        except (TypeError, ValueError):
            return data, False
        return zlib.compress(raw), True

    @staticmethod
    def _decode(entry: CacheEntry) -> Any:
        if not entry.compressed:
            return entry.data
        return json.loads(zlib.decompress(entry.data).decode("utf-8"))

    @staticmethod
    def _estimate_size(data: Any) -> int:
        try:
            return len(json.dumps(data, default=str)) * 2
        except (TypeError, ValueError):
            return ev.default_entry_size


# Singleton
adaptive_cache = AdaptiveCache()
