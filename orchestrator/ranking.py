"""Result re-ranking and per-domain diversity filtering."""

from collections.abc import Sequence
from dataclasses import replace

from models.query_descriptor import QueryDescriptor
from models.search_response import SearchResult
from utils.text_utils import extract_domain, tokenize_words

HIGH_AUTHORITY_DOMAINS = ("wikipedia.org", "github.com", "stackoverflow.com", "medium.com")
MEDIUM_AUTHORITY_DOMAINS = ("reddit.com", "quora.com", "youtube.com")

TITLE_TERM_BOOST = 0.4
SNIPPET_TERM_BOOST = 0.2
TITLE_PHRASE_BOOST = 0.6
SNIPPET_PHRASE_BOOST = 0.3
HIGH_AUTHORITY_BOOST = 0.3
MEDIUM_AUTHORITY_BOOST = 0.1
MAX_CONTEXT_BOOST = 0.3
RECENCY_BOOST = 0.1


def _matches_domain(domain: str, listed: Sequence[str]) -> bool:
    return any(domain == d or domain.endswith("." + d) for d in listed)


def domain_authority_boost(domain: str) -> float:
    if _matches_domain(domain, HIGH_AUTHORITY_DOMAINS):
        return HIGH_AUTHORITY_BOOST
    if _matches_domain(domain, MEDIUM_AUTHORITY_DOMAINS):
        return MEDIUM_AUTHORITY_BOOST
    return 0.0


def context_relevance(result: SearchResult, context: Sequence[str]) -> float:
    """Fraction of distinct context words found in title + snippet, capped at 0.3."""
    words = set(tokenize_words(" ".join(context)))
    if not words:
        return 0.0
    text = f"{result.title} {result.snippet}".lower()
    matched = sum(1 for word in words if word in text)
    return min(MAX_CONTEXT_BOOST, matched / len(words))


def max_per_domain(max_results: int) -> int:
    return max(2, max_results // 4)


class ResultRanker:
    def score(self, result: SearchResult, descriptor: QueryDescriptor) -> float:
        """Final relevance: the provider base score plus query, authority, context and recency boosts."""
        query = descriptor.query.lower().strip()
        title = result.title.lower()
        snippet = result.snippet.lower()

        score = result.base_score
        for term in query.split():
            if term in title:
                score += TITLE_TERM_BOOST
            if term in snippet:
                score += SNIPPET_TERM_BOOST

        if query and query in title:
            score += TITLE_PHRASE_BOOST
        if query and query in snippet:
            score += SNIPPET_PHRASE_BOOST

        score += domain_authority_boost(extract_domain(result.url))
        score += context_relevance(result, descriptor.context)

        if descriptor.time_range != "all":
            score += RECENCY_BOOST
        return max(0.0, score)

    def rank(
        self, results: Sequence[SearchResult], descriptor: QueryDescriptor
    ) -> list[SearchResult]:
        """
        Score every result and sort descending.

        Scores are computed from base_score, so ranking an already ranked list
        again gives the same order. The sort is stable and duplicate ids keep
        their first occurrence.
        """
        seen: set[str] = set()
        scored: list[SearchResult] = []
        for result in results:
            if result.id in seen:
                continue
            seen.add(result.id)
            scored.append(replace(result, relevance_score=self.score(result, descriptor)))

        scored.sort(key=lambda r: r.relevance_score, reverse=True)
        return scored

    def apply_diversity_filter(
        self, results: Sequence[SearchResult], max_results: int
    ) -> list[SearchResult]:
        cap = max_per_domain(max_results)
        domain_counts: dict[str, int] = {}
        filtered: list[SearchResult] = []

        for result in results:
            if len(filtered) >= max_results:
                break
            domain = extract_domain(result.url)
            count = domain_counts.get(domain, 0)
            if count < cap:
                filtered.append(result)
                domain_counts[domain] = count + 1

        return filtered

    def rank_and_filter(
        self, results: Sequence[SearchResult], descriptor: QueryDescriptor
    ) -> list[SearchResult]:
        return self.apply_diversity_filter(self.rank(results, descriptor), descriptor.max_results)
