"""Two-tier (memory + disk) cache for registry discovery and search work."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from stackreg.config import Config

logger = logging.getLogger(__name__)

__all__ = ["CacheManager", "CacheStats", "MISS"]


class _Missing:
    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Any = _Missing()
"""Returned by :meth:`CacheManager.get` when a key is absent or expired."""

_UNSERIALIZABLE_SIZE = 1024


@dataclass
class _Entry:
    value: Any
    inserted_at: float
    ttl: float
    size: int

    def expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl


@dataclass
class CacheStats:
    """Snapshot of cache accounting."""

    hits: int
    misses: int
    evictions: int
    entries_in_memory: int
    memory_used: int
    max_entries: int
    disk_enabled: bool
    hit_rate: float = field(init=False)

    def __post_init__(self) -> None:
        total = self.hits + self.misses
        self.hit_rate = self.hits / total if total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hitRate": self.hit_rate,
            "entriesInMemory": self.entries_in_memory,
            "memoryUsed": self.memory_used,
            "maxEntries": self.max_entries,
            "diskEnabled": self.disk_enabled,
        }


class CacheManager:
    """Bounded LRU memory cache mirrored to a JSON-file disk store.

    Values must be JSON serialisable to reach the disk tier; anything else is
    kept in memory only. Entries expire ``ttl`` seconds after insertion in
    both tiers. Disk failures disable the disk tier and never propagate.
    """

    def __init__(
        self,
        cache_dir: str | Path | None = None,
        max_entries: int = 500,
        default_ttl: float = 3600.0,
        disk: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._cache_dir = Path(cache_dir).expanduser() if cache_dir is not None else None
        self._max_entries = max_entries
        self._default_ttl = float(default_ttl)
        self._disk_enabled = disk and self._cache_dir is not None
        self._clock = clock
        self._lock = threading.Lock()
        self._memory: OrderedDict[str, _Entry] = OrderedDict()
        self._memory_used = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @classmethod
    def from_config(cls, config: Config) -> CacheManager:
        """Build a cache from the ``cache.*`` configuration keys."""
        return cls(
            cache_dir=config.cache_dir,
            max_entries=int(config.get("cache.max_entries", 500)),
            default_ttl=float(config.get("cache.ttl_seconds", 3600)),
            disk=bool(config.get("cache.disk", True)),
        )

    @staticmethod
    def make_key(*parts: Any) -> str:
        """Content-address an operation and its arguments."""
        content = ":".join(str(p) for p in parts)
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    @property
    def cache_dir(self) -> Path | None:
        return self._cache_dir

    @property
    def disk_enabled(self) -> bool:
        return self._disk_enabled

    # ----- Lookup -----

    def get(self, key: str, default: Any = MISS) -> Any:
        """Return the cached value for ``key`` or ``default`` on a miss."""
        now = self._clock()
        with self._lock:
            entry = self._memory.get(key)
            if entry is not None:
                if not entry.expired(now):
                    self._memory.move_to_end(key)
                    self._hits += 1
                    return entry.value
                self._drop(key)

        if entry is not None:
            self._delete_disk(key)

        disk_entry = self._read_disk(key, now) if self._disk_enabled else None
        with self._lock:
            if disk_entry is not None:
                self._store(key, disk_entry)
                self._hits += 1
                return disk_entry.value
            self._misses += 1
        return default

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` under ``key`` in both tiers."""
        ttl = self._default_ttl if ttl is None else float(ttl)
        try:
            payload = json.dumps(value, sort_keys=True)
        except (TypeError, ValueError):
            payload = None

        if payload is not None:
            entry = _Entry(json.loads(payload), self._clock(), ttl, len(payload.encode("utf-8")))
        else:
            logger.debug("Cache value for %s is not JSON serialisable, memory only", key)
            entry = _Entry(value, self._clock(), ttl, _UNSERIALIZABLE_SIZE)

        with self._lock:
            self._store(key, entry)

        if payload is not None and self._disk_enabled:
            self._write_disk(key, entry)

    def delete(self, key: str) -> None:
        with self._lock:
            if key in self._memory:
                self._drop(key)
        self._delete_disk(key)

    def clear(self) -> None:
        """Empty both tiers and reset hit/miss accounting."""
        with self._lock:
            self._memory.clear()
            self._memory_used = 0
            self._hits = 0
            self._misses = 0
            self._evictions = 0

        if self._cache_dir is None or not self._cache_dir.exists():
            return
        try:
            for child in self._cache_dir.iterdir():
                if child.is_dir():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        except OSError as e:
            logger.warning("Failed to clear disk cache at %s: %s", self._cache_dir, e)

    def cleanup(self) -> int:
        """Remove expired entries from both tiers. Returns how many were removed."""
        now = self._clock()
        removed = 0
        with self._lock:
            for key in [k for k, e in self._memory.items() if e.expired(now)]:
                self._drop(key)
                removed += 1

        if not self._disk_enabled or self._cache_dir is None or not self._cache_dir.exists():
            return removed
        for path in self._cache_dir.glob("*/*.json"):
            entry = self._load_file(path)
            if entry is None or entry.expired(now):
                try:
                    path.unlink()
                    removed += 1
                except OSError as e:
                    logger.debug("Could not remove cache file %s: %s", path, e)
        return removed

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                entries_in_memory=len(self._memory),
                memory_used=self._memory_used,
                max_entries=self._max_entries,
                disk_enabled=self._disk_enabled,
            )

    def export_state(self) -> dict[str, Any]:
        """Debug view: stats, memory keys in LRU order, disk file count."""
        with self._lock:
            keys = list(self._memory)
        disk_files = 0
        if self._disk_enabled and self._cache_dir is not None and self._cache_dir.exists():
            disk_files = sum(1 for _ in self._cache_dir.glob("*/*.json"))
        return {
            "stats": self.stats().to_dict(),
            "memoryKeys": keys,
            "diskFiles": disk_files,
            "cacheDir": str(self._cache_dir) if self._cache_dir is not None else None,
        }

    # ----- Memory tier (caller holds the lock) -----

    def _store(self, key: str, entry: _Entry) -> None:
        if key in self._memory:
            self._drop(key)
        self._memory[key] = entry
        self._memory_used += entry.size
        while len(self._memory) > self._max_entries:
            evicted_key, evicted = self._memory.popitem(last=False)
            self._memory_used -= evicted.size
            self._evictions += 1
            logger.debug("Evicted cache entry %s", evicted_key)

    def _drop(self, key: str) -> None:
        entry = self._memory.pop(key)
        self._memory_used -= entry.size

    # ----- Disk tier -----

    def _disk_path(self, key: str) -> Path:
        assert self._cache_dir is not None
        return self._cache_dir / key[:2] / f"{key}.json"

    def _disable_disk(self, error: Exception) -> None:
        if self._disk_enabled:
            logger.warning("Disk cache unavailable, continuing with memory only: %s", error)
        self._disk_enabled = False

    def _load_file(self, path: Path) -> _Entry | None:
        try:
            content = json.loads(path.read_text(encoding="utf-8"))
            return _Entry(
                value=content["value"],
                inserted_at=float(content["inserted_at"]),
                ttl=float(content["ttl"]),
                size=int(content.get("size", 0)),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug("Unreadable cache file %s: %s", path, e)
            return None

    def _read_disk(self, key: str, now: float) -> _Entry | None:
        path = self._disk_path(key)
        if not path.exists():
            return None
        entry = self._load_file(path)
        if entry is None or entry.expired(now):
            self._delete_disk(key)
            return None
        return entry

    def _write_disk(self, key: str, entry: _Entry) -> None:
        path = self._disk_path(key)
        document = json.dumps(
            {"inserted_at": entry.inserted_at, "ttl": entry.ttl, "size": entry.size, "value": entry.value},
            sort_keys=True,
        )
        tmp = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(document, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            self._disable_disk(e)

    def _delete_disk(self, key: str) -> None:
        if not self._disk_enabled:
            return
        try:
            self._disk_path(key).unlink(missing_ok=True)
        except OSError as e:
            logger.debug("Could not remove cache file for %s: %s", key, e)
