from dataclasses import dataclass

from models.search_response import SearchError
from orchestrator.search_types import FallbackDecision, NextAction


@dataclass(frozen=True)
class FallbackPolicy:
    # False: a non-retryable failure (bad key, bad request) still moves on to
    # the next provider, since that provider has its own credentials.
    stop_on_non_retryable: bool = False


class FallbackManager:
    def decide(
        self,
        *,
        error: SearchError,
        remaining_providers: int,
        policy: FallbackPolicy,
    ) -> FallbackDecision:
        if remaining_providers <= 0:
            return FallbackDecision(action=NextAction.STOP, reason="no_providers_left")

        if not error.retryable and policy.stop_on_non_retryable:
            return FallbackDecision(action=NextAction.STOP, reason=error.code or "non_retryable")

        return FallbackDecision(action=NextAction.NEXT_PROVIDER, reason=error.code or "unknown")
