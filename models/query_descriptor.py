from dataclasses import dataclass, field, replace
from typing import Literal

TimeRange = Literal["day", "week", "month", "year", "all"]
Intent = Literal["information", "current_events", "research", "troubleshooting"]

VALID_TIME_RANGES: tuple[str, ...] = ("day", "week", "month", "year", "all")

DEFAULT_MAX_RESULTS = 8
DEFAULT_TIME_RANGE: TimeRange = "all"


@dataclass(frozen=True)
class SearchPreferences:
    """Caller-supplied overrides applied on top of the processed query."""

    max_results: int | None = None
    time_range: TimeRange | None = None
    allow_cache: bool | None = None
    preferred_providers: tuple[str, ...] | None = None

    def __post_init__(self):
        if self.time_range is not None and self.time_range not in VALID_TIME_RANGES:
            raise ValueError(f"Invalid time_range: {self.time_range}")
        if self.max_results is not None and self.max_results <= 0:
            raise ValueError("max_results must be positive")
        if self.preferred_providers is not None and not isinstance(
            self.preferred_providers, tuple
        ):
            object.__setattr__(self, "preferred_providers", tuple(self.preferred_providers))


@dataclass(frozen=True)
class QueryDescriptor:
    raw_query: str
    enhanced_query: str
    context: tuple[str, ...] = ()
    user_id: str | None = None
    max_results: int = DEFAULT_MAX_RESULTS
    allow_cache: bool = True
    time_range: TimeRange = DEFAULT_TIME_RANGE

    conversation_id: str = ""
    intent: Intent = "information"
    keywords: tuple[str, ...] = field(default_factory=tuple)
    entities: tuple[str, ...] = field(default_factory=tuple)
    preferred_providers: tuple[str, ...] | None = None

    def __post_init__(self):
        for name in ("context", "keywords", "entities"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    @property
    def query(self) -> str:
        """The resolved query text sent to providers."""
        return self.enhanced_query

    def with_preferences(self, preferences: SearchPreferences | None) -> "QueryDescriptor":
        """Return a copy with any non-None preference applied."""
        if preferences is None:
            return self
        overrides = {}
        if preferences.max_results is not None:
            overrides["max_results"] = preferences.max_results
        if preferences.time_range is not None:
            overrides["time_range"] = preferences.time_range
        if preferences.allow_cache is not None:
            overrides["allow_cache"] = preferences.allow_cache
        if preferences.preferred_providers is not None:
            overrides["preferred_providers"] = preferences.preferred_providers
        return replace(self, **overrides) if overrides else self
