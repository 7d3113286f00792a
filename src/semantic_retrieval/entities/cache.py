"""In-process cache entries and statistics."""

from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    """A cached value with its bookkeeping.

    ``created_at`` and ``last_access`` are monotonic clock readings.
    """

    value: Any
    created_at: float
    last_access: float
    access_count: int = 0

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.created_at >= ttl

    def touch(self, now: float) -> None:
        self.last_access = now
        self.access_count += 1


@dataclass(frozen=True)
class PartitionStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of the cache counters, one block per partition."""

    query_vector: PartitionStats = PartitionStats()
    recommendation: PartitionStats = PartitionStats()
    user_preference: PartitionStats = PartitionStats()

    def to_dict(self) -> dict[str, int]:
        data: dict[str, int] = {}
        for name in ("query_vector", "recommendation", "user_preference"):
            stats: PartitionStats = getattr(self, name)
            data[f"{name}_hits"] = stats.hits
            data[f"{name}_misses"] = stats.misses
            data[f"{name}_evictions"] = stats.evictions
        return data
