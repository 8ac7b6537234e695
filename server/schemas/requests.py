"""Pydantic request models for FastAPI endpoints."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from models.query_descriptor import SearchPreferences


class SearchPreferencesRequest(BaseModel):
    max_results: Optional[int] = Field(None, gt=0, le=50)
    time_range: Optional[Literal["day", "week", "month", "year", "all"]] = None
    allow_cache: Optional[bool] = None
    preferred_providers: Optional[List[str]] = Field(None, min_length=1)

    def to_preferences(self) -> SearchPreferences:
        return SearchPreferences(
            max_results=self.max_results,
            time_range=self.time_range,
            allow_cache=self.allow_cache,
            preferred_providers=(
                tuple(p.lower() for p in self.preferred_providers)
                if self.preferred_providers
                else None
            ),
        )


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    context: List[str] = Field(default_factory=list)
    conversation_id: str = Field("default", min_length=1, max_length=255)
    user_id: Optional[str] = Field(None, max_length=255)
    preferences: Optional[SearchPreferencesRequest] = None


class SuggestionsRequest(BaseModel):
    query: str = Field(..., min_length=1)
    context: List[str] = Field(default_factory=list)
    limit: int = Field(5, gt=0, le=10)
