from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from orchestrator.search_types import ProviderSettings

DEFAULT_REGISTRY_PATH = Path(__file__).resolve().parent.parent / "config" / "search_providers.yaml"


@dataclass
class ProviderRegistry:
    _providers: dict[str, ProviderSettings]
    _defaults: dict[str, Any]

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> "ProviderRegistry":
        registry_path = Path(path) if path else DEFAULT_REGISTRY_PATH
        if not registry_path.exists():
            raise ValueError(f"Provider registry not found at {registry_path}")

        data = yaml.safe_load(registry_path.read_text(encoding="utf-8"))
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ProviderRegistry":
        if not data or "providers" not in data:
            raise ValueError("Invalid provider registry: missing providers")

        defaults = data.get("defaults") or {}
        default_limits = defaults.get("rate_limit") or {}

        providers: dict[str, ProviderSettings] = {}
        for name, pdata in (data["providers"] or {}).items():
            pdata = pdata or {}
            if not isinstance(pdata, dict):
                raise ValueError(f"Invalid settings for provider {name}")
            limits = {**default_limits, **(pdata.get("rate_limit") or {})}
            options = pdata.get("options") or {}
            if not isinstance(options, dict):
                raise ValueError(f"Invalid options for provider {name}")

            providers[name.lower()] = ProviderSettings(
                name=name.lower(),
                enabled=bool(pdata.get("enabled", True)),
                priority=int(pdata.get("priority", 1)),
                timeout_s=float(pdata.get("timeout_s", defaults.get("timeout_s", 10))),
                requests_per_minute=int(limits.get("requests_per_minute", 10)),
                requests_per_day=int(limits.get("requests_per_day", 100)),
                day_window_seconds=int(limits.get("day_window_seconds", 86400)),
                options=dict(options),
            )

        return cls(_providers=providers, _defaults=defaults)

    def get(self, name: str) -> ProviderSettings | None:
        return self._providers.get((name or "").lower().strip())

    def settings_for(self, name: str) -> ProviderSettings:
        """Registry settings for name, or the defaults when it is not listed."""
        settings = self.get(name)
        if settings is not None:
            return settings
        limits = self._defaults.get("rate_limit") or {}
        return ProviderSettings(
            name=name.lower(),
            timeout_s=float(self._defaults.get("timeout_s", 10)),
            requests_per_minute=int(limits.get("requests_per_minute", 10)),
            requests_per_day=int(limits.get("requests_per_day", 100)),
            day_window_seconds=int(limits.get("day_window_seconds", 86400)),
        )

    def list_enabled(self) -> list[ProviderSettings]:
        enabled = [p for p in self._providers.values() if p.enabled]
        return sorted(enabled, key=lambda p: p.priority, reverse=True)
