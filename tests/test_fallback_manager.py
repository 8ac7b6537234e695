from models.search_response import SearchError
from orchestrator.fallback_manager import FallbackManager, FallbackPolicy
from orchestrator.search_types import NextAction


def test_next_provider_on_retryable_error():
    manager = FallbackManager()
    decision = manager.decide(
        error=SearchError(provider="a", error="slow", code="timeout", retryable=True),
        remaining_providers=1,
        policy=FallbackPolicy(),
    )
    assert decision.action == NextAction.NEXT_PROVIDER
    assert decision.reason == "timeout"


def test_non_retryable_error_still_falls_through_by_default():
    manager = FallbackManager()
    decision = manager.decide(
        error=SearchError(provider="a", error="bad key", code="auth", retryable=False),
        remaining_providers=2,
        policy=FallbackPolicy(),
    )
    assert decision.action == NextAction.NEXT_PROVIDER


def test_strict_policy_stops_on_non_retryable_error():
    manager = FallbackManager()
    decision = manager.decide(
        error=SearchError(provider="a", error="bad request", code="bad_request", retryable=False),
        remaining_providers=2,
        policy=FallbackPolicy(stop_on_non_retryable=True),
    )
    assert decision.action == NextAction.STOP
    assert decision.reason == "bad_request"


def test_stop_when_no_providers_left():
    manager = FallbackManager()
    decision = manager.decide(
        error=SearchError(provider="a", error="down", code="provider_error"),
        remaining_providers=0,
        policy=FallbackPolicy(),
    )
    assert decision.action == NextAction.STOP
    assert decision.reason == "no_providers_left"


def test_unknown_codes_are_normalized():
    error = SearchError(provider="a", error="?", code="weird")
    assert error.code == "unknown"
