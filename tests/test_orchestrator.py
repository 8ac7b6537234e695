import asyncio
import time

import pytest

from models.query_descriptor import SearchPreferences
from models.search_errors import AllProvidersExhaustedError, SearchProviderError
from models.search_response import SearchError
from orchestrator.core import SearchOrchestrator
from orchestrator.search_cache import SearchCache
from orchestrator.search_metrics import SearchMetricsRecorder
from providers.base_provider import RawHit


class RecordingMemoryStore:
    def __init__(self):
        self.calls = []

    def store(self, query, results, conversation_id, user_id=None):
        self.calls.append((query, list(results), conversation_id, user_id))


class FailingMemoryStore:
    def store(self, query, results, conversation_id, user_id=None):
        raise RuntimeError("memory backend unavailable")


def _hits(count: int, prefix: str = "site") -> list[RawHit]:
    return [
        RawHit(title=f"rust result {i}", url=f"https://{prefix}{i}.com/page", snippet="rust")
        for i in range(count)
    ]


def test_rate_limited_provider_is_skipped_without_consuming_quota(fake_provider):
    provider_a = fake_provider("A", priority=10, requests_per_minute=0)
    provider_b = fake_provider("B", priority=5)
    orchestrator = SearchOrchestrator(providers=[provider_b, provider_a])

    response = orchestrator.search_sync("rust ownership", [], "conv-1")

    assert response.provider == "B"
    assert response.from_cache is False
    assert provider_a.fetch_calls == 0
    assert provider_a.rate_limit.minute_count == 0
    assert provider_a.rate_limit.day_count == 0
    assert provider_b.fetch_calls == 1


def test_providers_tried_in_priority_order(fake_provider):
    low = fake_provider("low", priority=1)
    high = fake_provider("high", priority=9)
    orchestrator = SearchOrchestrator(providers=[low, high])

    assert orchestrator.search_sync("query", [], "c").provider == "high"
    assert low.fetch_calls == 0


def test_disabled_provider_is_never_called(fake_provider):
    disabled = fake_provider("off", priority=10, enabled=False)
    healthy = fake_provider("on", priority=1)
    orchestrator = SearchOrchestrator(providers=[disabled, healthy])

    assert orchestrator.search_sync("query", [], "c").provider == "on"
    assert disabled.fetch_calls == 0


def test_second_identical_search_is_served_from_cache(fake_provider):
    provider = fake_provider("B")
    orchestrator = SearchOrchestrator(providers=[provider])

    first = orchestrator.search_sync("rust ownership", ["learning rust"], "c", user_id="u1")
    second = orchestrator.search_sync("rust ownership", ["learning rust"], "c", user_id="u1")

    assert first.from_cache is False
    assert second.from_cache is True
    assert second.provider == "B"
    assert [r.id for r in second.results] == [r.id for r in first.results]
    assert provider.fetch_calls == 1

    samples = orchestrator.get_metrics()
    assert [s.cache_hit for s in samples] == [False, True]


def test_cache_is_scoped_by_user(fake_provider):
    provider = fake_provider("B")
    orchestrator = SearchOrchestrator(providers=[provider])

    orchestrator.search_sync("rust ownership", [], "c", user_id="u1")
    orchestrator.search_sync("rust ownership", [], "c", user_id="u2")

    assert provider.fetch_calls == 2


def test_allow_cache_false_bypasses_cache(fake_provider):
    provider = fake_provider("B")
    orchestrator = SearchOrchestrator(providers=[provider])
    no_cache = SearchPreferences(allow_cache=False)

    orchestrator.search_sync("q", [], "c", preferences=no_cache)
    response = orchestrator.search_sync("q", [], "c", preferences=no_cache)

    assert response.from_cache is False
    assert provider.fetch_calls == 2
    assert len(orchestrator.cache) == 0


def test_all_providers_failing_raises_with_every_error(fake_provider):
    provider_a = fake_provider("A", priority=2, error=RuntimeError("A exploded"))
    provider_b = fake_provider("B", priority=1, error=RuntimeError("B exploded"))
    orchestrator = SearchOrchestrator(providers=[provider_a, provider_b])

    with pytest.raises(AllProvidersExhaustedError) as exc_info:
        orchestrator.search_sync("q", [], "c")

    errors = exc_info.value.errors
    assert [e.provider for e in errors] == ["A", "B"]
    message = str(exc_info.value)
    assert message.startswith("All search providers failed. Errors: ")
    assert "A exploded" in message and "B exploded" in message

    last = orchestrator.get_metrics()[-1]
    assert last.error is not None
    assert last.result_count == 0


def test_no_providers_raises_exhausted():
    orchestrator = SearchOrchestrator(providers=[])

    with pytest.raises(AllProvidersExhaustedError) as exc_info:
        orchestrator.search_sync("q", [], "c")

    assert exc_info.value.errors == []


def test_non_retryable_error_still_falls_through(fake_provider):
    auth_error = SearchProviderError(
        SearchError(provider="A", error="invalid key", code="auth", retryable=False)
    )
    provider_a = fake_provider("A", priority=2, error=auth_error)
    provider_b = fake_provider("B", priority=1)
    orchestrator = SearchOrchestrator(providers=[provider_a, provider_b])

    assert orchestrator.search_sync("q", [], "c").provider == "B"


def test_preferred_providers_restrict_the_chain(fake_provider):
    provider_a = fake_provider("A", priority=10)
    provider_b = fake_provider("B", priority=1)
    orchestrator = SearchOrchestrator(providers=[provider_a, provider_b])

    response = orchestrator.search_sync(
        "q", [], "c", preferences=SearchPreferences(preferred_providers=("b",))
    )

    assert response.provider == "B"
    assert provider_a.fetch_calls == 0


def test_results_are_ranked_unique_and_diversity_filtered(fake_provider):
    hits = [RawHit(title=f"rust {i}", url=f"https://big.com/{i}") for i in range(6)]
    hits += _hits(4)
    hits.append(hits[0])
    provider = fake_provider("B", hits=hits)
    orchestrator = SearchOrchestrator(providers=[provider])

    response = orchestrator.search_sync(
        "rust", [], "c", preferences=SearchPreferences(max_results=20)
    )

    ids = [r.id for r in response.results]
    assert len(ids) == len(set(ids))
    assert sum(1 for r in response.results if r.source == "big.com") <= 5
    scores = [r.relevance_score for r in response.results]
    assert scores == sorted(scores, reverse=True)


def test_memory_store_receives_top_five(fake_provider):
    store = RecordingMemoryStore()
    provider = fake_provider("B", hits=_hits(8))
    orchestrator = SearchOrchestrator(providers=[provider], memory_store=store)

    response = orchestrator.search_sync("rust", [], "conv-9", user_id="u1")

    assert len(store.calls) == 1
    query, results, conversation_id, user_id = store.calls[0]
    assert query == response.query
    assert [r.id for r in results] == [r.id for r in response.results[:5]]
    assert conversation_id == "conv-9"
    assert user_id == "u1"


def test_memory_store_failure_does_not_fail_search(fake_provider):
    orchestrator = SearchOrchestrator(
        providers=[fake_provider("B")], memory_store=FailingMemoryStore()
    )

    response = orchestrator.search_sync("q", [], "c")
    assert response.total_results == 1


def test_cache_failure_does_not_fail_search(fake_provider, monkeypatch):
    orchestrator = SearchOrchestrator(providers=[fake_provider("B")])

    def broken(*args, **kwargs):
        raise RuntimeError("cache broken")

    monkeypatch.setattr(orchestrator.cache, "get", broken)
    monkeypatch.setattr(orchestrator.cache, "set", broken)

    assert orchestrator.search_sync("q", [], "c").provider == "B"


def test_metrics_ring_is_bounded(fake_provider):
    orchestrator = SearchOrchestrator(
        providers=[fake_provider("B")],
        metrics=SearchMetricsRecorder(max_history=3),
    )
    for i in range(5):
        orchestrator.search_sync(f"query {i}", [], "c")

    samples = orchestrator.get_metrics()
    assert len(samples) == 3
    assert orchestrator.get_metrics_summary()["total_searches"] == 3


def test_search_sync_inside_running_loop(fake_provider):
    orchestrator = SearchOrchestrator(providers=[fake_provider("B")])

    async def caller():
        return orchestrator.search_sync("q", [], "c")

    assert asyncio.run(caller()).provider == "B"


def test_search_sync_is_bounded_by_provider_timeout(fake_provider):
    slow = fake_provider("slow", priority=10, timeout_s=0.2, delay_s=2.0)
    healthy = fake_provider("healthy", priority=1)
    orchestrator = SearchOrchestrator(providers=[slow, healthy])

    start = time.monotonic()
    response = orchestrator.search_sync("q", [], "c")
    elapsed = time.monotonic() - start

    assert response.provider == "healthy"
    assert elapsed < 1.5


def test_search_sync_inside_running_loop_is_bounded_by_timeout(fake_provider):
    slow = fake_provider("slow", priority=10, timeout_s=0.2, delay_s=2.0)
    healthy = fake_provider("healthy", priority=1)
    orchestrator = SearchOrchestrator(providers=[slow, healthy])

    async def caller():
        return orchestrator.search_sync("q", [], "c")

    start = time.monotonic()
    assert asyncio.run(caller()).provider == "healthy"
    assert time.monotonic() - start < 1.5


def test_async_search(fake_provider):
    orchestrator = SearchOrchestrator(providers=[fake_provider("B")])

    response = asyncio.run(orchestrator.search("q", ["context message"], "c"))
    assert response.provider == "B"


def test_suggestions_combine_cache_and_context():
    cache = SearchCache()
    orchestrator = SearchOrchestrator(providers=[], cache=cache)
    cache.set("best coffee shops in paris", [])

    suggestions = orchestrator.get_search_suggestions(
        "best coffee shops", ["I love espresso drinks"], limit=5
    )

    assert suggestions[0] == "best coffee shops in paris"
    assert "best coffee shops love" in suggestions
    assert len(suggestions) == len(set(suggestions))
    assert len(suggestions) <= 5


def test_cache_management(fake_provider):
    orchestrator = SearchOrchestrator(providers=[fake_provider("B")])
    orchestrator.search_sync("a", [], "c", user_id="u1")
    orchestrator.search_sync("b", [], "c")

    assert orchestrator.get_cache_stats()["size"] == 2
    assert orchestrator.invalidate_user("u1") == 1
    orchestrator.clear_cache()
    assert orchestrator.get_cache_stats()["size"] == 0


def test_shutdown_closes_providers(fake_provider):
    provider = fake_provider("B")
    orchestrator = SearchOrchestrator(providers=[provider])

    orchestrator.start()
    orchestrator.shutdown()

    assert provider.closed
