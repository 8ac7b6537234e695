import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_PROVIDERS_FILE = Path(__file__).parent / "search_providers.yaml"


class ProviderName(str, Enum):
    """Supported search providers."""

    OPENAI = "openai"
    TAVILY = "tavily"


class SearchConfig:
    """Configuration management for the search service."""

    def __init__(self):
        """Initialize configuration from environment variables (and .env when present)."""
        env_path = Path(__file__).parent.parent / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # Provider credentials
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
        self.TAVILY_API_KEY = os.getenv("TAVILY_API_KEY")

        # Provider registry
        self.SEARCH_PROVIDERS_FILE = Path(
            os.getenv("SEARCH_PROVIDERS_FILE", str(DEFAULT_PROVIDERS_FILE))
        )

        # Cache
        self.SEARCH_CACHE_TTL_SECONDS = int(os.getenv("SEARCH_CACHE_TTL_SECONDS", "1800"))
        self.SEARCH_CACHE_MAX_SIZE = int(os.getenv("SEARCH_CACHE_MAX_SIZE", "1000"))
        self.SEARCH_CACHE_SWEEP_SECONDS = int(os.getenv("SEARCH_CACHE_SWEEP_SECONDS", "300"))

        # Metrics and memory hand-off
        self.SEARCH_METRICS_HISTORY = int(os.getenv("SEARCH_METRICS_HISTORY", "1000"))
        self.SEARCH_MEMORY_TOP_N = int(os.getenv("SEARCH_MEMORY_TOP_N", "5"))
        self.DATABASE_URL = os.getenv("DATABASE_URL")

    def configured_providers(self) -> list[str]:
        """
        Get the providers that have credentials available.

        Returns:
            list[str]: Provider names with an API key set
        """
        keys = {
            ProviderName.OPENAI.value: self.OPENAI_API_KEY,
            ProviderName.TAVILY.value: self.TAVILY_API_KEY,
        }
        return [name for name, key in keys.items() if key]

    def validate(self) -> bool:
        """
        Validate that the configuration can serve searches.

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        if not self.configured_providers():
            logger.error("No search provider configured. Set OPENAI_API_KEY or TAVILY_API_KEY.")
            return False

        if not self.SEARCH_PROVIDERS_FILE.exists():
            logger.error(f"Provider registry not found at {self.SEARCH_PROVIDERS_FILE}")
            return False

        if self.SEARCH_CACHE_TTL_SECONDS <= 0 or self.SEARCH_CACHE_MAX_SIZE <= 0:
            logger.error("SEARCH_CACHE_TTL_SECONDS and SEARCH_CACHE_MAX_SIZE must be positive")
            return False

        return True

    def get_provider_info(self) -> str:
        """
        Get a short description of the configured providers.

        Returns:
            str: Formatted string with provider names
        """
        providers = self.configured_providers()
        return ", ".join(providers) if providers else "none"
