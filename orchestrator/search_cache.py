"""Thread-safe TTL + LRU cache for search results."""

import json
import threading
from collections import OrderedDict
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from models.search_response import CacheEntry, SearchResult
from utils.logger import get_logger
from utils.text_utils import stable_hash, tokenize_words

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_MAX_SIZE = 1000
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60

SIMILARITY_FLOOR = 0.3


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def jaccard_similarity(a: str, b: str) -> float:
    """Word-set Jaccard similarity over lower-cased whitespace tokens."""
    set_a = set(tokenize_words(a))
    set_b = set(tokenize_words(b))
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


class SearchCache:
    """
    In-memory search result cache.

    Entries are keyed by the normalized query (and user scope), expire after a
    TTL, and the least-recently-touched entry is evicted when the cache is full.
    A background sweeper thread removes expired entries between start() and
    shutdown(). All access goes through one lock.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_size: int = DEFAULT_MAX_SIZE,
        sweep_interval_s: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Args:
            ttl_seconds: Default time to live for new entries
            max_size: Maximum number of entries before LRU eviction
            sweep_interval_s: Interval of the background expiry sweep
            clock: Source of the current (timezone-aware) time
        """
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_size = max_size
        self._sweep_interval_s = sweep_interval_s
        self._clock = clock

        self._hits = 0
        self._misses = 0
        self._evictions = 0

        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

    @property
    def max_size(self) -> int:
        return self._max_size

    # ---------- keys ----------

    @staticmethod
    def make_key(query: str, user_id: str | None = None) -> str:
        normalized = (query or "").strip().lower()
        user_part = f"::{user_id}" if user_id else ""
        return f"search:{stable_hash(normalized)}{user_part}"

    # ---------- core operations ----------

    def get(self, query: str, user_id: str | None = None) -> list[SearchResult] | None:
        """
        Get cached results if present and not expired.

        A hit refreshes the entry's access time but not its expiry.
        """
        key = self.make_key(query, user_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            now = self._clock()
            if entry.is_expired(now):
                del self._entries[key]
                self._misses += 1
                return None

            entry.timestamp = now
            self._entries.move_to_end(key)
            self._hits += 1
            return list(entry.results)

    def set(
        self,
        query: str,
        results: Sequence[SearchResult],
        user_id: str | None = None,
        ttl_seconds: float | None = None,
    ) -> None:
        """Store results; evicts the least-recently-touched entry when full."""
        key = self.make_key(query, user_id)
        ttl = timedelta(seconds=ttl_seconds) if ttl_seconds is not None else self._ttl

        with self._lock:
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self._max_size:
                self._evict_oldest()

            self._entries[key] = CacheEntry(
                key=key,
                query=query,
                results=tuple(results),
                timestamp=now,
                expires_at=now + ttl,
                user_id=user_id,
            )
            self._entries.move_to_end(key)

    def has(self, query: str, user_id: str | None = None) -> bool:
        key = self.make_key(query, user_id)
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def invalidate(self, query: str, user_id: str | None = None) -> None:
        key = self.make_key(query, user_id)
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_user(self, user_id: str) -> int:
        """Drop every entry scoped to user_id. Returns the number removed."""
        with self._lock:
            keys = [k for k, e in self._entries.items() if e.user_id == user_id]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict_oldest(self) -> None:
        # Caller holds the lock. Entries are kept in touch order.
        if not self._entries:
            return
        oldest_key, _ = self._entries.popitem(last=False)
        self._evictions += 1
        logger.debug(f"Evicted cache entry {oldest_key}")

    # ---------- expiry sweep ----------

    def purge_expired(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.info(
                f"Search cache cleanup: removed {len(expired)} expired entries",
                extra={"extra_fields": {"removed": len(expired)}},
            )
        return len(expired)

    def start(self) -> None:
        """Start the background expiry sweeper (idempotent)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="search-cache-sweeper", daemon=True
        )
        self._sweeper.start()

    def shutdown(self) -> None:
        """Stop the background sweeper."""
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self._sweep_interval_s):
            try:
                self.purge_expired()
            except Exception as e:
                logger.error(f"Search cache sweep failed: {e}", exc_info=True)

    # ---------- similarity & stats ----------

    def get_similar_queries(self, query: str, limit: int = 5) -> list[str]:
        """
        Cached queries that are related to, but not identical with, query.

        Similarity is word-set Jaccard; only scores strictly between 0.3 and
        1.0 are returned, best first.
        """
        with self._lock:
            cached_queries = [e.query for e in self._entries.values()]

        scored: list[tuple[float, str]] = []
        seen: set[str] = set()
        for cached in cached_queries:
            if cached in seen:
                continue
            seen.add(cached)
            score = jaccard_similarity(query, cached)
            if SIMILARITY_FLOOR < score < 1.0:
                scored.append((score, cached))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [q for _, q in scored[:limit]]

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            size = len(self._entries)
            memory = sum(
                len(json.dumps(e.to_dict(), default=str).encode("utf-8"))
                for e in self._entries.values()
            )
            lookups = self._hits + self._misses
            return {
                "size": size,
                "max_size": self._max_size,
                "memory_usage_estimate": memory,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": (self._hits / lookups) if lookups else None,
            }
