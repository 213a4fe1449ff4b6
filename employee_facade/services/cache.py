"""
EmployeeCache - single-slot cache for the upstream "all employees" collection.

Features:
- One logical entry keyed by ``all-employees``: Empty or Populated(snapshot)
- Snapshots are tuples of frozen Employee models, so readers never see a torn list
- Explicit invalidation only (no TTL)
- Stampede control: concurrent misses share one upstream fill
- Invalidation generations: a fill started before ``invalidate()`` never
  repopulates the slot afterwards
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable

from loguru import logger

from employee_facade.models import Employee
from employee_facade.services.deduplicator import RequestDeduplicator

ALL_EMPLOYEES_KEY = "all-employees"

Snapshot = tuple[Employee, ...]


@dataclass(frozen=True)
class CacheEntry:
    """The populated slot."""

    data: Snapshot
    timestamp: datetime
    generation: int


class EmployeeCache:
    """
    Process-wide cache of the employee collection.

    Usage:
        cache = EmployeeCache()

        snapshot = await cache.get()
        if snapshot is None:
            snapshot = await cache.get_or_load(fetch_all)

        # after a successful create/delete
        await cache.invalidate()
    """

    def __init__(self, debug: bool = False):
        self._entry: CacheEntry | None = None
        self._generation = 0
        self._debug = debug
        self._lock = asyncio.Lock()
        self._deduplicator = RequestDeduplicator(debug=debug)
        self._stats = CacheStats()

    async def get(self) -> Snapshot | None:
        """Return the cached snapshot, or None on a miss."""
        async with self._lock:
            if self._entry is None:
                self._stats.misses += 1
                self._log(f"MISS: {ALL_EMPLOYEES_KEY}")
                return None

            self._stats.hits += 1
            self._log(f"HIT: {ALL_EMPLOYEES_KEY}")
            return self._entry.data

    async def put(self, employees: Iterable[Employee]) -> Snapshot:
        """Replace the slot with a snapshot of ``employees``."""
        snapshot = tuple(employees)
        async with self._lock:
            self._store(snapshot)
        return snapshot

    async def invalidate(self) -> None:
        """Empty the slot and orphan any fill that is still in flight."""
        async with self._lock:
            self._generation += 1
            self._entry = None
            self._stats.invalidations += 1
            self._log(f"INVALIDATE: {ALL_EMPLOYEES_KEY} (generation {self._generation})")

    async def get_or_load(
        self,
        loader: Callable[[], Awaitable[Iterable[Employee]]],
    ) -> Snapshot:
        """
        Return the cached snapshot, filling it through ``loader`` on a miss.

        Concurrent misses within one generation coalesce into a single
        ``loader`` call and all receive the same snapshot (or the same error).
        """
        cached = await self.get()
        if cached is not None:
            return cached

        generation = self._generation

        async def fill() -> Snapshot:
            self._stats.fills += 1
            snapshot = tuple(await loader())
            async with self._lock:
                if generation == self._generation:
                    self._store(snapshot)
                else:
                    self._log(
                        f"DISCARD: fill for generation {generation} "
                        f"superseded by {self._generation}"
                    )
            return snapshot

        return await self._deduplicator.dedupe(
            f"{ALL_EMPLOYEES_KEY}:{generation}", fill
        )

    def _store(self, snapshot: Snapshot) -> None:
        self._entry = CacheEntry(
            data=snapshot,
            timestamp=datetime.now(),
            generation=self._generation,
        )
        logger.info(f"Cached {len(snapshot)} employees")

    async def close(self) -> None:
        await self._deduplicator.cancel_all()

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.populated = self._entry is not None
        self._stats.cached_at = self._entry.timestamp if self._entry else None
        self._stats.size = len(self._entry.data) if self._entry else 0
        return self._stats

    def get_deduplicator_stats(self) -> dict[str, Any]:
        return self._deduplicator.get_stats().to_dict()

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[EmployeeCache] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    fills: int = 0
    invalidations: int = 0
    populated: bool = False
    size: int = 0
    cached_at: datetime | None = None

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "fills": self.fills,
            "invalidations": self.invalidations,
            "populated": self.populated,
            "size": self.size,
            "cached_at": self.cached_at.isoformat() if self.cached_at else None,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
