import openai
from typing import Any, Optional

from models.query_descriptor import QueryDescriptor
from orchestrator.search_types import ProviderSettings
from providers.base_provider import BaseSearchProvider, RawHit
from utils.logger import get_logger

logger = get_logger(__name__)

TIME_RANGE_HINTS = {
    "day": "Only use sources published in the last 24 hours.",
    "week": "Only use sources published in the last week.",
    "month": "Only use sources published in the last month.",
    "year": "Prefer sources published in the last year.",
}


class OpenAISearchProvider(BaseSearchProvider):
    """
    Search provider backed by the OpenAI Responses API web search tool.
    Citations attached to the model's answer are turned into search hits.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        settings: ProviderSettings,
        client: Optional[Any] = None,
        **kwargs,
    ):
        """
        Initialize the OpenAI search provider.

        Args:
            api_key: The OpenAI API key
            settings: Provider settings from the registry (options.model selects the model)
            client: Pre-built client, used by tests
        """
        super().__init__(settings, **kwargs)
        if not api_key and client is None:
            raise ValueError("OPENAI_API_KEY not found in environment")
        self.client = client or openai.OpenAI(
            api_key=api_key, max_retries=0, timeout=self.timeout_s
        )
        self.model_name = settings.options.get("model", "gpt-4.1-mini")

    def build_prompt(self, descriptor: QueryDescriptor) -> str:
        lines = [
            "Search the web and answer with cited sources.",
            f"Query: {descriptor.query}",
            f"Return up to {descriptor.max_results} distinct sources.",
        ]
        hint = TIME_RANGE_HINTS.get(descriptor.time_range)
        if hint:
            lines.append(hint)
        if descriptor.context:
            lines.append("Conversation context:")
            lines.extend(f"- {message}" for message in descriptor.context[-3:])
        return "\n".join(lines)

    def _fetch(self, descriptor: QueryDescriptor) -> list[RawHit]:
        response = self.client.responses.create(
            model=self.model_name,
            tools=[{"type": "web_search"}],
            input=self.build_prompt(descriptor),
        )
        return self.parse_response(response)

    @staticmethod
    def parse_response(response: Any) -> list[RawHit]:
        """
        Extract url_citation annotations from every output_text block.

        The snippet is the paragraph of answer text that carries the citation.
        Duplicate URLs keep their first occurrence.
        """
        hits: list[RawHit] = []
        seen: set[str] = set()

        for item in getattr(response, "output", None) or []:
            if getattr(item, "type", None) != "message":
                continue
            for block in getattr(item, "content", None) or []:
                text = getattr(block, "text", "") or ""
                for annotation in getattr(block, "annotations", None) or []:
                    if getattr(annotation, "type", None) != "url_citation":
                        continue
                    url = getattr(annotation, "url", None)
                    if not url or url in seen:
                        continue
                    seen.add(url)

                    end = getattr(annotation, "end_index", len(text))
                    start = getattr(annotation, "start_index", end)
                    paragraph_start = text.rfind("\n", 0, start) + 1
                    hits.append(
                        RawHit(
                            title=getattr(annotation, "title", None) or url,
                            url=url,
                            snippet=text[paragraph_start:start].strip(),
                        )
                    )

        return hits

    def classify_exception(self, exc: Exception) -> tuple[str, bool]:
        if isinstance(exc, openai.AuthenticationError):
            return "auth", False
        if isinstance(exc, openai.RateLimitError):
            return "rate_limit", True
        if isinstance(exc, openai.BadRequestError):
            return "bad_request", False
        if isinstance(exc, openai.APITimeoutError):
            return "timeout", True
        return super().classify_exception(exc)

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if callable(close):
            close()
