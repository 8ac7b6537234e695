import os
import tempfile
import time

import pytest
from dotenv import load_dotenv

# Keep test logs out of the working tree; must run before any project import
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "search-orchestrator-test-logs"))

# Load environment variables from .env file for tests
load_dotenv()

from orchestrator.search_types import ProviderSettings  # noqa: E402
from providers.base_provider import BaseSearchProvider, RawHit  # noqa: E402


class FakeProvider(BaseSearchProvider):
    """Offline provider: returns canned hits, or raises a configured error."""

    def __init__(
        self,
        name: str,
        priority: int = 1,
        hits: list[RawHit] | None = None,
        error: Exception | None = None,
        requests_per_minute: int = 10,
        requests_per_day: int = 100,
        timeout_s: float = 2.0,
        delay_s: float = 0.0,
        enabled: bool = True,
    ):
        super().__init__(
            ProviderSettings(
                name=name,
                enabled=enabled,
                priority=priority,
                timeout_s=timeout_s,
                requests_per_minute=requests_per_minute,
                requests_per_day=requests_per_day,
            )
        )
        self.hits = hits if hits is not None else [
            RawHit(title=f"{name} result", url=f"https://{name}.example.com/page", snippet="text")
        ]
        self.error = error
        self.delay_s = delay_s
        self.fetch_calls = 0
        self.closed = False

    def _fetch(self, descriptor):
        self.fetch_calls += 1
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return list(self.hits)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_provider():
    """Factory for offline providers."""
    return FakeProvider


@pytest.fixture
def mock_env(monkeypatch, tmp_path):
    """Environment with both provider keys and no database."""
    env_vars = {
        "OPENAI_API_KEY": "test-openai-key",
        "TAVILY_API_KEY": "test-tavily-key",
        "SEARCH_CACHE_TTL_SECONDS": "60",
        "SEARCH_CACHE_MAX_SIZE": "10",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    return env_vars
