"""Tavily web search provider.

Tavily returns ranked, cleanly extracted page content, so hits map almost
one-to-one onto RawHit. Time-sensitive queries use the "news" topic, which is
the only one that carries published dates.
"""

from typing import Any

from models.query_descriptor import QueryDescriptor
from orchestrator.search_types import ProviderSettings
from providers.base_provider import BaseSearchProvider, RawHit
from utils.logger import get_logger

logger = get_logger(__name__)

NEWS_TIME_RANGES = frozenset(["day", "week"])


class TavilySearchProvider(BaseSearchProvider):
    """Search provider backed by the Tavily search API."""

    name = "tavily"

    def __init__(self, api_key: str, settings: ProviderSettings, client: Any = None, **kwargs):
        """
        Initialize the Tavily provider.

        Args:
            api_key: Tavily API key
            settings: Provider settings from the registry
            client: Pre-built client (tests); built lazily from api_key otherwise
        """
        super().__init__(settings, **kwargs)
        if not api_key and client is None:
            raise ValueError("TAVILY_API_KEY not found in environment")

        if client is None:
            # Lazy import so the package imports without the SDK installed
            try:
                from tavily import TavilyClient
            except ModuleNotFoundError as e:
                raise ModuleNotFoundError(
                    "Optional dependency 'tavily' is not installed. "
                    "Install it to enable Tavily search: pip install tavily-python"
                ) from e
            client = TavilyClient(api_key=api_key)

        self.client = client
        self.search_depth = settings.options.get("search_depth", "advanced")
        self.include_images = bool(settings.options.get("include_images", False))
        logger.info("Tavily search provider initialized")

    def build_request(self, descriptor: QueryDescriptor) -> dict[str, Any]:
        request: dict[str, Any] = {
            "query": descriptor.query,
            "max_results": descriptor.max_results,
            "search_depth": self.search_depth,
            "include_images": self.include_images,
            "include_answer": False,
            "include_raw_content": False,
            "timeout": self.timeout_s,
        }
        if descriptor.time_range != "all":
            request["time_range"] = descriptor.time_range
        if descriptor.time_range in NEWS_TIME_RANGES or descriptor.intent == "current_events":
            request["topic"] = "news"
        return request

    def _fetch(self, descriptor: QueryDescriptor) -> list[RawHit]:
        request = self.build_request(descriptor)
        logger.debug(
            f"Tavily search: '{descriptor.query}'",
            extra={"extra_fields": {"request": request}},
        )
        response = self.client.search(**request)
        return self.parse_response(response)

    @staticmethod
    def parse_response(response: dict[str, Any]) -> list[RawHit]:
        images = [
            img.get("url") if isinstance(img, dict) else img
            for img in (response.get("images") or [])
        ]

        hits: list[RawHit] = []
        for idx, result in enumerate(response.get("results") or []):
            url = result.get("url")
            if not url:
                continue
            hits.append(
                RawHit(
                    title=result.get("title") or "Untitled",
                    url=url,
                    snippet=result.get("content") or "",
                    published_date=result.get("published_date"),
                    image_url=images[idx] if idx < len(images) else None,
                )
            )
        return hits

    def classify_exception(self, exc: Exception) -> tuple[str, bool]:
        from tavily.errors import InvalidAPIKeyError, UsageLimitExceededError

        if isinstance(exc, InvalidAPIKeyError):
            return "auth", False
        if isinstance(exc, UsageLimitExceededError):
            return "rate_limit", True
        return super().classify_exception(exc)
