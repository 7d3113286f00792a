"""In-process TTL/LRU cache for query vectors, recommendations and user preferences.

Each partition is an ``OrderedDict`` kept in access order under its own
lock, so the least recently used entry is always at the front and is
evicted in O(1). A plain lock is used rather than a reader/writer lock
because every read moves the entry to the back of the access order.

Statistics live under a separate lock so counting never contends with
cache contents.
"""

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from semantic_retrieval.config import Settings, settings
from semantic_retrieval.entities import (
    CacheEntry,
    CacheStats,
    PartitionStats,
    PersonalizationContext,
    RecommendationItem,
    RecommendationRequest,
    SearchOptions,
)

QUERY_VECTOR = "query_vector"
RECOMMENDATION = "recommendation"
USER_PREFERENCE = "user_preference"
PARTITIONS = (QUERY_VECTOR, RECOMMENDATION, USER_PREFERENCE)


@dataclass(frozen=True)
class CacheConfig:
    """Partition sizes and TTLs (seconds)."""

    query_vector_ttl: float = 3600.0
    query_vector_max_size: int = 10000
    recommendation_ttl: float = 1800.0
    recommendation_max_size: int = 5000
    user_preference_ttl: float = 86400.0
    user_preference_max_size: int = 1000
    cleanup_interval: float = 600.0

    def __post_init__(self) -> None:
        for name in ("query_vector_max_size", "recommendation_max_size", "user_preference_max_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("query_vector_ttl", "recommendation_ttl", "user_preference_ttl", "cleanup_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "CacheConfig":
        config = config or settings
        return cls(
            query_vector_ttl=config.query_vector_cache_ttl,
            query_vector_max_size=config.query_vector_cache_size,
            recommendation_ttl=config.recommendation_cache_ttl,
            recommendation_max_size=config.recommendation_cache_size,
            user_preference_ttl=config.user_preference_cache_ttl,
            user_preference_max_size=config.user_preference_cache_size,
            cleanup_interval=config.cache_cleanup_interval,
        )


def make_key(prefix: str, payload: dict[str, Any]) -> str:
    """Deterministic key: sha256 over the canonical JSON of ``payload``."""
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return f"{prefix}:{hashlib.sha256(encoded.encode('utf-8')).hexdigest()}"


def query_vector_key(query: str, options: SearchOptions) -> str:
    return make_key(
        "qv",
        {
            "query": query,
            "top_k": options.top_k,
            "user_id": options.user_id,
            "content_types": sorted(ct.value for ct in options.content_types),
            "min_similarity": options.min_similarity,
            "include_content": options.include_content,
            "similarity_metric": options.similarity_metric.value,
        },
    )


def recommendation_key(request: RecommendationRequest) -> str:
    time_range = None
    if request.time_range is not None:
        time_range = [
            request.time_range.start.isoformat() if request.time_range.start else None,
            request.time_range.end.isoformat() if request.time_range.end else None,
        ]
    return make_key(
        "rec",
        {
            "type": request.type.value,
            "user_id": request.user_id,
            "source_document_id": request.source_document_id,
            "source_query": request.source_query,
            "max_recommendations": request.max_recommendations,
            "min_similarity": request.min_similarity,
            "content_types": sorted(ct.value for ct in request.content_types),
            "exclude_documents": sorted(request.exclude_documents),
            "time_range": time_range,
            "diversity_enabled": request.diversity_enabled,
            "include_explanations": request.include_explanations,
            "personalization": request.personalization.fingerprint() if request.personalization else None,
        },
    )


class CachePartition:
    """One bounded TTL/LRU key-value map."""

    def __init__(
        self,
        name: str,
        max_size: int,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> tuple[Any, bool, bool]:
        """Look up ``key``.

        Returns:
            Tuple (value, found, expired). ``expired`` is True when an
            expired entry was found and evicted.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None, False, False
            if entry.is_expired(now, self.ttl):
                del self._entries[key]
                return None, False, True
            entry.touch(now)
            self._entries.move_to_end(key)
            return entry.value, True, False

    def set(self, key: str, value: Any) -> bool:
        """Insert or replace ``key``.

        Returns:
            True if the least recently used entry was evicted to make room
        """
        now = self._clock()
        evicted = False
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
                evicted = True
            self._entries[key] = CacheEntry(value=value, created_at=now, last_access=now)
        return evicted

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def remove_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now, self.ttl)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class VectorCacheManager:
    """Three-partition cache with background expiry.

    The cleanup thread starts on construction and is stopped by
    ``close()``, which is safe to call more than once and returns only
    after the thread has exited.

    Example:
        ```python
        cache = VectorCacheManager(CacheConfig(cleanup_interval=60))
        cache.set_query_vector("ai news", options, vector)
        vector, found = cache.get_query_vector("ai news", options)
        cache.close()
        ```
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or CacheConfig()
        self._logger = logger or logging.getLogger(__name__)
        self._partitions = {
            QUERY_VECTOR: CachePartition(
                QUERY_VECTOR, self._config.query_vector_max_size, self._config.query_vector_ttl, clock
            ),
            RECOMMENDATION: CachePartition(
                RECOMMENDATION, self._config.recommendation_max_size, self._config.recommendation_ttl, clock
            ),
            USER_PREFERENCE: CachePartition(
                USER_PREFERENCE, self._config.user_preference_max_size, self._config.user_preference_ttl, clock
            ),
        }
        self._stats = {name: {"hits": 0, "misses": 0, "evictions": 0} for name in PARTITIONS}
        self._stats_lock = threading.Lock()

        self._stop = threading.Event()
        self._close_lock = threading.Lock()
        self._closed = False
        self._cleanup_thread = threading.Thread(
            target=self._cleanup_loop,
            name=f"vector-cache-cleanup-{id(self):x}",
            daemon=True,
        )
        self._cleanup_thread.start()

        self._logger.info(
            "Vector cache manager started (query_vector_ttl=%ss, recommendation_ttl=%ss, cleanup_interval=%ss)",
            self._config.query_vector_ttl,
            self._config.recommendation_ttl,
            self._config.cleanup_interval,
        )

    @classmethod
    def create(cls, logger: logging.Logger | None = None) -> "VectorCacheManager":
        """Factory method using sizes and TTLs from settings."""
        return cls(config=CacheConfig.from_settings(), logger=logger)

    # Query vectors

    def get_query_vector(self, query: str, options: SearchOptions) -> tuple[list[float] | None, bool]:
        value = self._get(QUERY_VECTOR, query_vector_key(query, options))
        if value is None:
            return None, False
        return list(value), True

    def set_query_vector(self, query: str, options: SearchOptions, vector: list[float]) -> None:
        self._set(QUERY_VECTOR, query_vector_key(query, options), tuple(vector))

    def invalidate_query_vector(self, query: str, options: SearchOptions) -> bool:
        return self._partitions[QUERY_VECTOR].delete(query_vector_key(query, options))

    # Recommendations

    def get_recommendation(self, request: RecommendationRequest) -> tuple[list[RecommendationItem] | None, bool]:
        value = self._get(RECOMMENDATION, recommendation_key(request))
        if value is None:
            return None, False
        return list(value), True

    def set_recommendation(self, request: RecommendationRequest, items: list[RecommendationItem]) -> None:
        self._set(RECOMMENDATION, recommendation_key(request), tuple(items))

    def invalidate_recommendation(self, request: RecommendationRequest) -> bool:
        return self._partitions[RECOMMENDATION].delete(recommendation_key(request))

    def invalidate_recommendations(self) -> None:
        """Drop every cached recommendation, e.g. after the index changed."""
        self._partitions[RECOMMENDATION].clear()

    # User preferences

    def get_user_preference(self, user_id: str) -> tuple[PersonalizationContext | None, bool]:
        value = self._get(USER_PREFERENCE, make_key("up", {"user_id": user_id}))
        if value is None:
            return None, False
        return value, True

    def set_user_preference(self, user_id: str, context: PersonalizationContext) -> None:
        self._set(USER_PREFERENCE, make_key("up", {"user_id": user_id}), context)

    def invalidate_user(self, user_id: str) -> bool:
        return self._partitions[USER_PREFERENCE].delete(make_key("up", {"user_id": user_id}))

    # Internals

    def _get(self, partition: str, key: str) -> Any:
        value, found, expired = self._partitions[partition].get(key)
        with self._stats_lock:
            counters = self._stats[partition]
            if found:
                counters["hits"] += 1
            else:
                counters["misses"] += 1
                if expired:
                    counters["evictions"] += 1
        if found:
            self._logger.debug("%s cache hit: %s", partition, key)
            return value
        return None

    def _set(self, partition: str, key: str, value: Any) -> None:
        if self._partitions[partition].set(key, value):
            with self._stats_lock:
                self._stats[partition]["evictions"] += 1
            self._logger.debug("%s cache full, evicted least recently used entry", partition)

    def _cleanup_loop(self) -> None:
        while not self._stop.wait(self._config.cleanup_interval):
            self.cleanup_expired()

    def cleanup_expired(self) -> dict[str, int]:
        """Remove expired entries from every partition.

        Returns:
            Number of removed entries per partition
        """
        removed = {name: partition.remove_expired() for name, partition in self._partitions.items()}
        if any(removed.values()):
            self._logger.debug("Cache cleanup removed %s", removed)
        return removed

    # Introspection

    def get_stats(self) -> CacheStats:
        with self._stats_lock:
            snapshot = {name: PartitionStats(**counters) for name, counters in self._stats.items()}
        return CacheStats(**snapshot)

    def get_cache_info(self) -> dict[str, dict[str, Any]]:
        stats = self.get_stats()
        info: dict[str, dict[str, Any]] = {}
        for name, partition in self._partitions.items():
            partition_stats: PartitionStats = getattr(stats, name)
            info[name] = {
                "size": len(partition),
                "max_size": partition.max_size,
                "ttl": partition.ttl,
                "hits": partition_stats.hits,
                "misses": partition_stats.misses,
                "evictions": partition_stats.evictions,
                "hit_ratio": partition_stats.hit_ratio,
            }
        return info

    def clear(self) -> None:
        for partition in self._partitions.values():
            partition.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop the cleanup thread and clear every partition."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
            self._stop.set()
            if self._cleanup_thread is not threading.current_thread():
                self._cleanup_thread.join()
            self.clear()
        self._logger.info("Vector cache manager closed")
