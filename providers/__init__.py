"""Search providers behind one abstract contract."""

from .base_provider import BaseSearchProvider, RawHit
from .factory import PROVIDER_CLASSES, create_provider, create_providers_from_env
from .openai_provider import OpenAISearchProvider
from .rate_limiter import RateLimitWindow
from .tavily_provider import TavilySearchProvider

__all__ = [
    "PROVIDER_CLASSES",
    "BaseSearchProvider",
    "OpenAISearchProvider",
    "RateLimitWindow",
    "RawHit",
    "TavilySearchProvider",
    "create_provider",
    "create_providers_from_env",
]
