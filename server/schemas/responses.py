"""Pydantic response models (DTOs) for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class SearchResultDTO(BaseModel):
    id: str
    title: str
    url: str
    snippet: str
    provider: str
    relevance_score: float
    image_url: str | None = None
    source: str
    published_date: str | None = None
    timestamp: str


class SearchResponseDTO(BaseModel):
    results: list[SearchResultDTO]
    query: str
    total_results: int
    search_time_ms: int
    provider: str
    from_cache: bool = False

    @classmethod
    def from_search_response(cls, response):
        """Convert SearchResponse to DTO."""
        return cls(**response.to_dict())


class ErrorDTO(BaseModel):
    code: str | None = None
    message: str
    provider: str
    retryable: bool
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_search_error(cls, error):
        return cls(
            code=error.code,
            message=error.error,
            provider=error.provider,
            retryable=error.retryable,
            details=error.details,
        )


class SearchErrorResponseDTO(BaseModel):
    detail: str
    errors: list[ErrorDTO] = Field(default_factory=list)


class SuggestionsResponseDTO(BaseModel):
    query: str
    suggestions: list[str]


class MetricsSampleDTO(BaseModel):
    provider: str
    query_time_ms: int
    result_count: int
    cache_hit: bool
    error: str | None = None
    timestamp: str


class MetricsResponseDTO(BaseModel):
    samples: list[MetricsSampleDTO]
    summary: dict[str, Any]


class CacheStatsDTO(BaseModel):
    size: int
    max_size: int
    memory_usage_estimate: int
    hits: int
    misses: int
    evictions: int
    hit_rate: float | None = None


class CacheClearResponseDTO(BaseModel):
    cleared: bool
    user_id: str | None = None
    removed: int | None = None


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str = "1.0.0"
    providers: list[str] = Field(default_factory=list)
