from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class SearchError:
    provider: str
    error: str
    code: str | None = None
    retryable: bool = True
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        valid_codes = {
            "rate_limit",
            "timeout",
            "provider_error",
            "auth",
            "bad_request",
            "unknown",
            None,
        }
        if self.code not in valid_codes:
            object.__setattr__(self, "code", "unknown")

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "error": self.error,
            "code": self.code,
            "retryable": self.retryable,
            "details": self.details,
        }


@dataclass(frozen=True)
class SearchResult:
    id: str
    title: str
    url: str
    snippet: str
    provider: str

    base_score: float = 0.0  # provider-assigned, never changed by ranking
    relevance_score: float = 0.0  # final score written by ranking
    image_url: str | None = None
    source: str = "unknown"  # source domain
    published_date: str | None = None

    timestamp: str = field(default_factory=_utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "snippet": self.snippet,
            "provider": self.provider,
            "relevance_score": round(self.relevance_score, 4),
            "image_url": self.image_url,
            "source": self.source,
            "published_date": self.published_date,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SearchResponse:
    results: tuple[SearchResult, ...]
    query: str
    total_results: int
    search_time_ms: int
    provider: str
    from_cache: bool = False

    def __post_init__(self):
        if not isinstance(self.results, tuple):
            object.__setattr__(self, "results", tuple(self.results))

    @classmethod
    def build(
        cls,
        results: list[SearchResult] | tuple[SearchResult, ...],
        *,
        query: str,
        search_time_ms: int,
        provider: str,
        from_cache: bool = False,
    ) -> "SearchResponse":
        results = tuple(results)
        return cls(
            results=results,
            query=query,
            total_results=len(results),
            search_time_ms=search_time_ms,
            provider=provider,
            from_cache=from_cache,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "query": self.query,
            "total_results": self.total_results,
            "search_time_ms": self.search_time_ms,
            "provider": self.provider,
            "from_cache": self.from_cache,
        }


@dataclass(frozen=True)
class SearchMetrics:
    provider: str
    query_time_ms: int
    result_count: int
    cache_hit: bool
    error: str | None = None
    timestamp: str = field(default_factory=_utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "query_time_ms": self.query_time_ms,
            "result_count": self.result_count,
            "cache_hit": self.cache_hit,
            "error": self.error,
            "timestamp": self.timestamp,
        }


@dataclass
class CacheEntry:
    """Mutable on purpose: the cache refreshes timestamp on every hit."""

    key: str
    query: str
    results: tuple[SearchResult, ...]
    timestamp: datetime  # last touch (LRU signal)
    expires_at: datetime
    user_id: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "query": self.query,
            "user_id": self.user_id,
            "results": [r.to_dict() for r in self.results],
            "timestamp": self.timestamp.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }
