"""Factory for creating search providers from environment configuration."""

from config.config import ProviderName, SearchConfig
from orchestrator.provider_registry import ProviderRegistry
from providers.base_provider import BaseSearchProvider
from providers.openai_provider import OpenAISearchProvider
from providers.tavily_provider import TavilySearchProvider
from utils.logger import get_logger

logger = get_logger(__name__)

PROVIDER_CLASSES: dict[str, type[BaseSearchProvider]] = {
    ProviderName.OPENAI.value: OpenAISearchProvider,
    ProviderName.TAVILY.value: TavilySearchProvider,
}


def create_provider(name: str, api_key: str, registry: ProviderRegistry) -> BaseSearchProvider:
    """
    Create a single provider by name.

    Raises:
        ValueError: If the provider name is not supported
    """
    provider_cls = PROVIDER_CLASSES.get((name or "").lower().strip())
    if provider_cls is None:
        raise ValueError(f"Unsupported search provider: {name}")
    return provider_cls(api_key=api_key, settings=registry.settings_for(name))


def create_providers_from_env(
    config: SearchConfig, registry: ProviderRegistry
) -> list[BaseSearchProvider]:
    """
    Create every registered, enabled provider that has credentials.

    Providers without an API key, or whose client cannot be built, are skipped
    with a warning.

    Returns:
        Providers in descending priority order
    """
    api_keys = {
        ProviderName.OPENAI.value: config.OPENAI_API_KEY,
        ProviderName.TAVILY.value: config.TAVILY_API_KEY,
    }

    providers: list[BaseSearchProvider] = []
    for settings in registry.list_enabled():
        if settings.name not in PROVIDER_CLASSES:
            logger.warning(f"Skipping unknown search provider in registry: {settings.name}")
            continue

        api_key = api_keys.get(settings.name)
        if not api_key:
            logger.warning(f"Skipping search provider {settings.name}: no API key configured")
            continue

        try:
            providers.append(create_provider(settings.name, api_key, registry))
        except (ValueError, ModuleNotFoundError) as e:
            logger.warning(f"Search provider {settings.name} not available: {e}")

    logger.info(
        "Search providers initialized",
        extra={"extra_fields": {"providers": [p.provider_name for p in providers]}},
    )
    return providers
