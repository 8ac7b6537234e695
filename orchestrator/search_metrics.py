import threading
from collections import Counter, deque
from typing import Any

from models.search_response import SearchMetrics

DEFAULT_HISTORY_SIZE = 1000


class SearchMetricsRecorder:
    """Bounded ring of per-search samples; the oldest sample is dropped when full."""

    def __init__(self, max_history: int = DEFAULT_HISTORY_SIZE):
        if max_history <= 0:
            raise ValueError("max_history must be positive")
        self._samples: deque[SearchMetrics] = deque(maxlen=max_history)
        self._lock = threading.Lock()

    @property
    def max_history(self) -> int:
        return self._samples.maxlen or 0

    def record(
        self,
        provider: str,
        query_time_ms: int,
        result_count: int,
        cache_hit: bool,
        error: str | None = None,
    ) -> SearchMetrics:
        sample = SearchMetrics(
            provider=provider,
            query_time_ms=query_time_ms,
            result_count=result_count,
            cache_hit=cache_hit,
            error=error,
        )
        with self._lock:
            self._samples.append(sample)
        return sample

    def snapshot(self) -> list[SearchMetrics]:
        with self._lock:
            return list(self._samples)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def summary(self) -> dict[str, Any]:
        samples = self.snapshot()
        total = len(samples)
        if total == 0:
            return {
                "total_searches": 0,
                "cache_hit_rate": None,
                "error_rate": None,
                "avg_query_time_ms": None,
                "by_provider": {},
            }

        cache_hits = sum(1 for s in samples if s.cache_hit)
        errors = sum(1 for s in samples if s.error)
        live = [s for s in samples if not s.cache_hit and not s.error]

        return {
            "total_searches": total,
            "cache_hit_rate": cache_hits / total,
            "error_rate": errors / total,
            "avg_query_time_ms": (
                sum(s.query_time_ms for s in live) / len(live) if live else None
            ),
            "by_provider": dict(Counter(s.provider for s in samples)),
        }
