"""Exceptions raised across the provider and orchestrator boundaries."""

from models.search_response import SearchError


class SearchProviderError(Exception):
    """Raised by a provider; carries the structured SearchError value."""

    def __init__(self, error: SearchError):
        super().__init__(error.error)
        self.error = error

    @property
    def retryable(self) -> bool:
        return self.error.retryable


class AllProvidersExhaustedError(Exception):
    """Raised by the orchestrator when no provider produced a response."""

    def __init__(self, errors: list[SearchError]):
        self.errors = list(errors)
        if self.errors:
            joined = ", ".join(f"{e.provider}: {e.error}" for e in self.errors)
        else:
            joined = "no search provider available"
        super().__init__(f"All search providers failed. Errors: {joined}")
