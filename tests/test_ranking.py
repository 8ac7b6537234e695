import pytest

from models.query_descriptor import QueryDescriptor
from models.search_response import SearchResult
from orchestrator.ranking import ResultRanker, context_relevance, domain_authority_boost


def _result(idx: int, url: str, title: str = "title", snippet: str = "snippet", base: float = 1.0):
    return SearchResult(
        id=f"p_{idx}", title=title, url=url, snippet=snippet, provider="p", base_score=base
    )


def _descriptor(query: str = "rust ownership", max_results: int = 8, **kwargs) -> QueryDescriptor:
    return QueryDescriptor(raw_query=query, enhanced_query=query, max_results=max_results, **kwargs)


def test_score_combines_term_phrase_and_authority_boosts():
    ranker = ResultRanker()
    result = _result(
        1,
        "https://en.wikipedia.org/wiki/Rust",
        title="Rust ownership",
        snippet="about rust ownership rules",
    )

    # base 1.0 + title terms 0.8 + snippet terms 0.4 + phrase 0.6 + 0.3 + authority 0.3
    assert ranker.score(result, _descriptor()) == pytest.approx(3.4)


def test_recency_bonus_only_for_bounded_window():
    ranker = ResultRanker()
    result = _result(1, "https://example.com")

    unbounded = ranker.score(result, _descriptor(time_range="all"))
    bounded = ranker.score(result, _descriptor(time_range="week"))
    assert bounded - unbounded == pytest.approx(0.1)


def test_score_never_goes_negative():
    ranker = ResultRanker()
    # position 15 of a research query: 1.0 - 15 * 0.1
    late = _result(15, "https://example.com", base=-0.5)

    assert ranker.score(late, _descriptor()) == 0.0


def test_domain_authority_lists():
    assert domain_authority_boost("github.com") == 0.3
    assert domain_authority_boost("docs.github.com") == 0.3
    assert domain_authority_boost("reddit.com") == 0.1
    assert domain_authority_boost("notgithub.com") == 0.0


def test_context_relevance_is_capped():
    result = _result(1, "https://a.com", title="rust borrow checker", snippet="lifetimes")

    assert context_relevance(result, ["rust borrow checker lifetimes"]) == 0.3
    assert context_relevance(result, ["rust", "python", "java", "go", "ruby"]) == pytest.approx(0.2)
    assert context_relevance(result, []) == 0.0


def test_rank_sorts_descending_and_keeps_base_score():
    ranker = ResultRanker()
    results = [
        _result(1, "https://a.com", title="unrelated"),
        _result(2, "https://b.com", title="rust ownership"),
    ]

    ranked = ranker.rank(results, _descriptor())

    assert [r.id for r in ranked] == ["p_2", "p_1"]
    assert ranked[0].relevance_score > ranked[1].relevance_score
    assert all(r.base_score == 1.0 for r in ranked)


def test_rank_is_stable_for_ties():
    ranker = ResultRanker()
    results = [_result(i, f"https://site{i}.com") for i in range(5)]

    assert [r.id for r in ranker.rank(results, _descriptor())] == [f"p_{i}" for i in range(5)]


def test_reranking_is_idempotent():
    ranker = ResultRanker()
    descriptor = _descriptor(context=("rust memory safety",))
    results = [
        _result(1, "https://github.com/x", title="rust", base=0.9),
        _result(2, "https://a.com", title="rust ownership", base=0.5),
        _result(3, "https://reddit.com/r/rust", title="memory safety", base=1.2),
        _result(4, "https://b.com", title="misc", base=1.0),
    ]

    once = ranker.rank(results, descriptor)
    twice = ranker.rank(once, descriptor)

    assert [r.id for r in once] == [r.id for r in twice]
    assert [r.relevance_score for r in once] == [r.relevance_score for r in twice]


def test_duplicate_ids_keep_first_occurrence():
    ranker = ResultRanker()
    results = [
        _result(1, "https://a.com", title="first"),
        _result(1, "https://a.com", title="second"),
        _result(2, "https://b.com"),
    ]

    ranked = ranker.rank(results, _descriptor())

    assert len(ranked) == 2
    assert [r.title for r in ranked if r.id == "p_1"] == ["first"]


def test_diversity_filter_caps_dominant_domain():
    ranker = ResultRanker()
    results = [_result(i, f"https://big.com/{i}") for i in range(6)]
    results += [_result(10 + i, f"https://other{i}.com") for i in range(3)]

    filtered = ranker.apply_diversity_filter(results, max_results=8)

    assert sum(1 for r in filtered if "big.com" in r.url) == 2
    assert len(filtered) == 5


@pytest.mark.parametrize("max_results", [1, 2, 4, 7, 8, 12, 20])
def test_diversity_filter_property(max_results):
    ranker = ResultRanker()
    domains = ["a.com", "b.com", "www.a.com", "c.com", "a.com"]
    results = [_result(i, f"https://{domains[i % len(domains)]}/{i}") for i in range(40)]

    filtered = ranker.apply_diversity_filter(results, max_results)

    cap = max(2, max_results // 4)
    counts: dict[str, int] = {}
    for r in filtered:
        host = r.url.split("/")[2].removeprefix("www.")
        counts[host] = counts.get(host, 0) + 1
    assert len(filtered) <= max_results
    assert all(count <= cap for count in counts.values())


def test_rank_and_filter_respects_max_results():
    ranker = ResultRanker()
    results = [_result(i, f"https://site{i}.com") for i in range(12)]

    assert len(ranker.rank_and_filter(results, _descriptor(max_results=5))) == 5
