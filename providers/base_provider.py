import asyncio
import inspect
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from models.query_descriptor import QueryDescriptor
from models.search_errors import SearchProviderError
from models.search_response import SearchError, SearchResponse, SearchResult
from orchestrator.search_types import ProviderSettings
from providers.rate_limiter import RateLimitWindow
from utils.logger import get_logger
from utils.text_utils import extract_domain, sanitize_snippet, stable_hash

logger = get_logger(__name__)

MAX_BASE_SCORE = 2.0
RECENT_CONTENT_DAYS = 7


@dataclass(frozen=True)
class RawHit:
    """A provider hit before normalization into a SearchResult."""

    title: str
    url: str
    snippet: str = ""
    published_date: str | None = None
    image_url: str | None = None
    source: str | None = None


def parse_published_date(value: str | None) -> datetime | None:
    """Parse ISO-8601 or RFC 2822 dates; returns an aware datetime or None."""
    if not value:
        return None
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class BaseSearchProvider(ABC):
    """
    Abstract base class for search providers.

    Subclasses implement _fetch(), a blocking call against the backend. The
    base class owns rate limiting, the timeout, error normalization and the
    conversion of raw hits into scored SearchResults.
    """

    name: str = "base"

    def __init__(self, settings: ProviderSettings, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the provider.

        Args:
            settings: Enabled flag, priority, timeout and rate limits
            clock: Monotonic clock used by the rate-limit window
        """
        self.settings = settings
        self.enabled = settings.enabled
        self.priority = settings.priority
        self.timeout_s = settings.timeout_s
        self.rate_limit = RateLimitWindow(
            requests_per_minute=settings.requests_per_minute,
            requests_per_day=settings.requests_per_day,
            day_window_seconds=settings.day_window_seconds,
            clock=clock,
        )

    @property
    def provider_name(self) -> str:
        return self.settings.name or self.name

    def is_enabled(self) -> bool:
        return self.enabled

    def get_priority(self) -> int:
        return self.priority

    # ---------- rate limiting ----------

    def check_rate_limit(self) -> bool:
        """Non-consuming check; search() uses the atomic rate_limit.acquire()."""
        return self.rate_limit.check()

    def increment_request_count(self) -> None:
        self.rate_limit.increment()

    # ---------- helpers ----------

    def create_search_error(
        self,
        error: str,
        code: str | None = None,
        retryable: bool = True,
        details: dict[str, Any] | None = None,
    ) -> SearchError:
        return SearchError(
            provider=self.provider_name,
            error=error,
            code=code,
            retryable=retryable,
            details=details or {},
        )

    async def with_timeout(self, call: Callable[[], Any], timeout_s: float | None = None) -> Any:
        """
        Run call under the provider timeout.

        Blocking callables run in the loop's default executor; coroutine
        functions are awaited directly. On timeout a retryable SearchProviderError
        is raised carrying the budget.
        """
        timeout = timeout_s or self.timeout_s
        loop = asyncio.get_running_loop()
        start = loop.time()

        if inspect.iscoroutinefunction(call):
            awaitable = call()
        else:
            awaitable = loop.run_in_executor(None, call)

        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as e:
            elapsed_ms = int((loop.time() - start) * 1000)
            raise SearchProviderError(
                self.create_search_error(
                    f"Request timeout after {timeout}s",
                    code="timeout",
                    retryable=True,
                    details={"timeout_seconds": timeout, "elapsed_ms": elapsed_ms},
                )
            ) from e

    @staticmethod
    def generate_result_id(url: str, provider: str) -> str:
        return f"{provider}_{stable_hash(url + provider, 12)}"

    @staticmethod
    def sanitize_snippet(text: str | None) -> str:
        return sanitize_snippet(text)

    @staticmethod
    def calculate_base_score(
        hit: RawHit, query: str, position: int, now: datetime | None = None
    ) -> float:
        """Position score plus query-term and freshness boosts, capped at 2.0."""
        score = 1.0 - position * 0.1

        title = (hit.title or "").lower()
        snippet = (hit.snippet or "").lower()
        for term in query.lower().split():
            if term in title:
                score += 0.3
            if term in snippet:
                score += 0.1

        published = parse_published_date(hit.published_date)
        if published is not None:
            now = now or datetime.now(timezone.utc)
            if now - published < timedelta(days=RECENT_CONTENT_DAYS):
                score += 0.2

        return min(score, MAX_BASE_SCORE)

    def to_results(self, hits: list[RawHit], query: str) -> list[SearchResult]:
        results: list[SearchResult] = []
        for position, hit in enumerate(hits):
            if not hit.url:
                continue
            cleaned = replace(
                hit,
                title=hit.title or "Untitled",
                snippet=self.sanitize_snippet(hit.snippet),
            )
            results.append(
                SearchResult(
                    id=self.generate_result_id(hit.url, self.provider_name),
                    title=cleaned.title,
                    url=hit.url,
                    snippet=cleaned.snippet,
                    provider=self.provider_name,
                    base_score=self.calculate_base_score(cleaned, query, position),
                    image_url=hit.image_url,
                    source=hit.source or extract_domain(hit.url),
                    published_date=hit.published_date,
                )
            )
        return results

    def classify_exception(self, exc: Exception) -> tuple[str, bool]:
        """Map a backend exception to (code, retryable). Subclasses refine this."""
        return "provider_error", True

    # ---------- search ----------

    async def search(self, descriptor: QueryDescriptor) -> SearchResponse:
        """
        Execute the descriptor against this provider.

        Raises:
            SearchProviderError: rate limited, timed out or backend failure
        """
        start = time.perf_counter()

        if not self.rate_limit.acquire():
            raise SearchProviderError(
                self.create_search_error("Rate limit exceeded", code="rate_limit", retryable=True)
            )

        try:
            hits = await self.with_timeout(lambda: self._fetch(descriptor))
        except SearchProviderError:
            raise
        except Exception as e:
            code, retryable = self.classify_exception(e)
            raise SearchProviderError(
                self.create_search_error(
                    f"{self.provider_name} search failed: {e}",
                    code=code,
                    retryable=retryable,
                    details={"exception_type": type(e).__name__},
                )
            ) from e

        results = self.to_results(hits[: descriptor.max_results], descriptor.query)
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        logger.info(
            f"{self.provider_name} returned {len(results)} results",
            extra={
                "extra_fields": {
                    "provider": self.provider_name,
                    "result_count": len(results),
                    "latency_ms": elapsed_ms,
                }
            },
        )

        return SearchResponse.build(
            results,
            query=descriptor.query,
            search_time_ms=elapsed_ms,
            provider=self.provider_name,
        )

    @abstractmethod
    def _fetch(self, descriptor: QueryDescriptor) -> list[RawHit]:
        """Blocking backend call returning raw hits in backend rank order."""

    def close(self) -> None:
        """Release backend clients. Default: nothing to release."""
