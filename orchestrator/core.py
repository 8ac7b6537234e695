"""
SearchOrchestrator - Core business logic layer for context-aware web search.

Key guarantees:
- Providers are tried strictly in descending priority; the first success wins
- Cache, metrics and memory-store failures never fail a search
- AllProvidersExhaustedError is the only error that escapes search()
"""

import asyncio
import concurrent.futures
import functools
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from models.query_descriptor import QueryDescriptor, SearchPreferences
from models.search_errors import AllProvidersExhaustedError, SearchProviderError
from models.search_response import SearchError, SearchMetrics, SearchResponse, SearchResult
from orchestrator.fallback_manager import FallbackManager, FallbackPolicy
from orchestrator.query_processor import QueryProcessor
from orchestrator.ranking import ResultRanker
from orchestrator.search_cache import SearchCache
from orchestrator.search_metrics import SearchMetricsRecorder
from orchestrator.search_types import NextAction
from providers.base_provider import BaseSearchProvider
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MEMORY_TOP_N = 5
MAX_CACHED_SUGGESTIONS = 3


class SearchMemoryStore(Protocol):
    def store(
        self,
        query: str,
        results: Sequence[SearchResult],
        conversation_id: str,
        user_id: str | None = None,
    ) -> Any: ...


class SearchOrchestrator:
    """
    Runs one search end to end: query processing, cache, provider fallback,
    ranking, diversity filtering, cache write, memory hand-off and metrics.
    """

    def __init__(
        self,
        providers: Sequence[BaseSearchProvider],
        cache: SearchCache | None = None,
        query_processor: QueryProcessor | None = None,
        ranker: ResultRanker | None = None,
        metrics: SearchMetricsRecorder | None = None,
        memory_store: SearchMemoryStore | None = None,
        fallback_manager: FallbackManager | None = None,
        fallback_policy: FallbackPolicy | None = None,
        memory_top_n: int = DEFAULT_MEMORY_TOP_N,
    ):
        self.providers = list(providers)
        # cache and metrics define __len__, so an empty one is falsy
        self.cache = cache if cache is not None else SearchCache()
        self.query_processor = query_processor or QueryProcessor()
        self.ranker = ranker or ResultRanker()
        self.metrics = metrics if metrics is not None else SearchMetricsRecorder()
        self.memory_store = memory_store
        self.fallback_manager = fallback_manager or FallbackManager()
        self.fallback_policy = fallback_policy or FallbackPolicy()
        self.memory_top_n = memory_top_n

    # ---------- lifecycle ----------

    def start(self) -> None:
        self.cache.start()
        logger.info(
            "Search orchestrator started",
            extra={"extra_fields": {"providers": [p.provider_name for p in self.providers]}},
        )

    def shutdown(self) -> None:
        self.cache.shutdown()
        for provider in self.providers:
            try:
                provider.close()
            except Exception as e:
                logger.warning(f"Failed to close provider {provider.provider_name}: {e}")
        logger.info("Search orchestrator stopped")

    # ---------- helpers ----------

    def _ordered_providers(self, allowed: Sequence[str] | None = None) -> list[BaseSearchProvider]:
        candidates = [p for p in self.providers if p.is_enabled()]
        if allowed is not None:
            allowed_names = {name.lower() for name in allowed}
            candidates = [p for p in candidates if p.provider_name.lower() in allowed_names]
        # sorted() is stable, so equal priorities keep registration order
        return sorted(candidates, key=lambda p: p.get_priority(), reverse=True)

    def _cache_get(self, descriptor: QueryDescriptor) -> list[SearchResult] | None:
        try:
            return self.cache.get(descriptor.query, descriptor.user_id)
        except Exception as e:
            logger.warning(f"Search cache read failed: {e}")
            return None

    def _cache_set(self, descriptor: QueryDescriptor, results: Sequence[SearchResult]) -> None:
        try:
            self.cache.set(descriptor.query, results, descriptor.user_id)
        except Exception as e:
            logger.warning(f"Search cache write failed: {e}")

    def _record_metrics(
        self,
        provider: str,
        query_time_ms: int,
        result_count: int,
        cache_hit: bool,
        error: str | None = None,
    ) -> None:
        try:
            self.metrics.record(provider, query_time_ms, result_count, cache_hit, error)
        except Exception as e:
            logger.warning(f"Failed to record search metrics: {e}")

    async def _store_in_memory(
        self, response: SearchResponse, conversation_id: str, user_id: str | None
    ) -> None:
        if self.memory_store is None:
            return
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                functools.partial(
                    self.memory_store.store,
                    response.query,
                    list(response.results[: self.memory_top_n]),
                    conversation_id,
                    user_id,
                ),
            )
        except Exception as e:
            logger.warning(
                f"Failed to store search results in memory: {e}",
                extra={"extra_fields": {"conversation_id": conversation_id}},
            )

    async def _execute_with_fallback(self, descriptor: QueryDescriptor) -> SearchResponse:
        providers = self._ordered_providers(descriptor.preferred_providers)
        errors: list[SearchError] = []

        for idx, provider in enumerate(providers):
            try:
                return await provider.search(descriptor)
            except SearchProviderError as e:
                error = e.error
            except Exception as e:
                logger.error(
                    f"Unexpected error from provider {provider.provider_name}: {e}",
                    exc_info=True,
                )
                error = SearchError(
                    provider=provider.provider_name,
                    error=str(e) or type(e).__name__,
                    code="provider_error",
                )

            errors.append(error)
            logger.warning(
                f"Search provider {error.provider} failed: {error.error}",
                extra={"extra_fields": error.to_dict()},
            )

            decision = self.fallback_manager.decide(
                error=error,
                remaining_providers=len(providers) - idx - 1,
                policy=self.fallback_policy,
            )
            if decision.action == NextAction.STOP:
                break

        raise AllProvidersExhaustedError(errors)

    # ---------- public API ----------

    async def search(
        self,
        query: str,
        conversation_context: Sequence[Any] | None = None,
        conversation_id: str = "",
        user_id: str | None = None,
        preferences: SearchPreferences | None = None,
    ) -> SearchResponse:
        """
        Search the web with conversation context.

        Args:
            query: Raw user query
            conversation_context: Recent messages (strings or {"content": ...} mappings)
            conversation_id: Conversation the search belongs to
            user_id: Optional user scope for the cache and memory store
            preferences: Optional overrides for count, window, caching and providers

        Returns:
            SearchResponse with ranked, diversity-filtered results

        Raises:
            AllProvidersExhaustedError: every eligible provider failed
        """
        start = time.perf_counter()

        descriptor = self.query_processor.process(
            query, conversation_context or [], conversation_id, user_id
        ).with_preferences(preferences)

        if descriptor.allow_cache:
            cached = self._cache_get(descriptor)
            if cached is not None:
                elapsed_ms = int((time.perf_counter() - start) * 1000)
                provider = cached[0].provider if cached else "cache"
                self._record_metrics(provider, elapsed_ms, len(cached), cache_hit=True)
                logger.info(
                    "Search served from cache",
                    extra={"extra_fields": {"query": descriptor.query, "results": len(cached)}},
                )
                return SearchResponse.build(
                    cached,
                    query=descriptor.query,
                    search_time_ms=elapsed_ms,
                    provider=provider,
                    from_cache=True,
                )

        try:
            provider_response = await self._execute_with_fallback(descriptor)
        except AllProvidersExhaustedError as e:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            failed = e.errors[-1].provider if e.errors else "none"
            self._record_metrics(failed, elapsed_ms, 0, cache_hit=False, error=str(e))
            logger.error(str(e), extra={"extra_fields": {"query": descriptor.query}})
            raise

        results = self.ranker.rank_and_filter(provider_response.results, descriptor)
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        response = SearchResponse.build(
            results,
            query=descriptor.query,
            search_time_ms=elapsed_ms,
            provider=provider_response.provider,
        )

        if descriptor.allow_cache and results:
            self._cache_set(descriptor, results)

        await self._store_in_memory(response, conversation_id, user_id)
        self._record_metrics(response.provider, elapsed_ms, len(results), cache_hit=False)

        logger.info(
            "Search completed",
            extra={
                "extra_fields": {
                    "provider": response.provider,
                    "query": descriptor.query,
                    "intent": descriptor.intent,
                    "results": response.total_results,
                    "latency_ms": elapsed_ms,
                }
            },
        )
        return response

    def search_sync(
        self,
        query: str,
        conversation_context: Sequence[Any] | None = None,
        conversation_id: str = "",
        user_id: str | None = None,
        preferences: SearchPreferences | None = None,
    ) -> SearchResponse:
        """
        Synchronous wrapper for search.

        When an event loop is already running in this thread the search runs
        in a separate thread with its own loop.
        """
        coro_fn = functools.partial(
            self.search, query, conversation_context, conversation_id, user_id, preferences
        )
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return self._run_in_new_loop(coro_fn)

        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(self._run_in_new_loop, coro_fn)
            return future.result()

    @staticmethod
    def _run_in_new_loop(coro_fn: Callable[[], Awaitable[Any]]) -> Any:
        """
        Run a coroutine on a private loop without waiting for abandoned fetches.

        asyncio.run() joins the default executor on exit, so a provider call
        that already hit its timeout would still block the caller until the
        backend answered. Here the executor is released with wait=False.
        """
        loop = asyncio.new_event_loop()
        executor = concurrent.futures.ThreadPoolExecutor(thread_name_prefix="search-provider")
        loop.set_default_executor(executor)
        try:
            return loop.run_until_complete(coro_fn())
        finally:
            try:
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                executor.shutdown(wait=False)
                loop.close()

    def get_search_suggestions(
        self,
        query: str,
        conversation_context: Sequence[Any] | None = None,
        limit: int = 5,
    ) -> list[str]:
        """Similar cached queries first, then context-based suggestions; deduplicated."""
        suggestions: list[str] = []
        try:
            suggestions.extend(self.cache.get_similar_queries(query, MAX_CACHED_SUGGESTIONS))
        except Exception as e:
            logger.warning(f"Similar-query lookup failed: {e}")

        context = self.query_processor.analyze_context(conversation_context or [], "suggestions")
        suggestions.extend(self.query_processor.generate_search_suggestions(context, query))

        unique: list[str] = []
        for suggestion in suggestions:
            if suggestion not in unique:
                unique.append(suggestion)
        return unique[:limit]

    def get_metrics(self) -> list[SearchMetrics]:
        return self.metrics.snapshot()

    def get_metrics_summary(self) -> dict[str, Any]:
        return self.metrics.summary()

    def get_cache_stats(self) -> dict[str, Any]:
        return self.cache.get_stats()

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Search cache cleared")

    def invalidate_user(self, user_id: str) -> int:
        removed = self.cache.invalidate_user(user_id)
        logger.info(
            "Invalidated user cache entries",
            extra={"extra_fields": {"user_id": user_id, "removed": removed}},
        )
        return removed

    def provider_status(self) -> list[dict[str, Any]]:
        return [
            {
                "name": p.provider_name,
                "enabled": p.is_enabled(),
                "priority": p.get_priority(),
                **p.rate_limit.snapshot(),
            }
            for p in self._ordered_providers()
        ]
