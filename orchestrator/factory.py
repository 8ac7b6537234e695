"""Factory for creating the search orchestrator from environment configuration."""

from config.config import SearchConfig
from orchestrator.core import SearchOrchestrator
from orchestrator.provider_registry import ProviderRegistry
from orchestrator.search_cache import SearchCache
from orchestrator.search_metrics import SearchMetricsRecorder
from providers.factory import create_providers_from_env
from utils.logger import get_logger

logger = get_logger(__name__)


def create_memory_store_from_env(config: SearchConfig):
    """SQL memory store when DATABASE_URL is set, otherwise None."""
    if not config.DATABASE_URL:
        logger.info("DATABASE_URL not set; search memory store disabled")
        return None

    from db.engine import create_db_engine
    from db.memory_store import SqlSearchMemoryStore
    from db.session import create_session_factory
    from db.tables import create_tables

    engine = create_db_engine(config.DATABASE_URL)
    create_tables(engine)
    return SqlSearchMemoryStore(create_session_factory(engine))


def create_search_orchestrator_from_env(config: SearchConfig | None = None) -> SearchOrchestrator:
    """
    Build a fully wired SearchOrchestrator.

    Environment variables: see SearchConfig. The orchestrator is returned
    un-started; callers own start()/shutdown().
    """
    config = config or SearchConfig()
    registry = ProviderRegistry.from_yaml(config.SEARCH_PROVIDERS_FILE)

    providers = create_providers_from_env(config, registry)
    if not providers:
        logger.warning("No search providers available; every search will fail")

    cache = SearchCache(
        ttl_seconds=config.SEARCH_CACHE_TTL_SECONDS,
        max_size=config.SEARCH_CACHE_MAX_SIZE,
        sweep_interval_s=config.SEARCH_CACHE_SWEEP_SECONDS,
    )

    return SearchOrchestrator(
        providers=providers,
        cache=cache,
        metrics=SearchMetricsRecorder(max_history=config.SEARCH_METRICS_HISTORY),
        memory_store=create_memory_store_from_env(config),
        memory_top_n=config.SEARCH_MEMORY_TOP_N,
    )
