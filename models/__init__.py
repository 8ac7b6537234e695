"""
Models package for search value objects.
"""

from .query_descriptor import QueryDescriptor, SearchPreferences
from .search_errors import AllProvidersExhaustedError, SearchProviderError
from .search_response import CacheEntry, SearchError, SearchMetrics, SearchResponse, SearchResult

__all__ = [
    "AllProvidersExhaustedError",
    "CacheEntry",
    "QueryDescriptor",
    "SearchError",
    "SearchMetrics",
    "SearchPreferences",
    "SearchProviderError",
    "SearchResponse",
    "SearchResult",
]
