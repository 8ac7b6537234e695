from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class QueryContext:
    conversation_id: str
    recent_messages: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    entities: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProviderSettings:
    name: str
    enabled: bool = True
    priority: int = 1
    timeout_s: float = 10.0
    requests_per_minute: int = 10
    requests_per_day: int = 100
    day_window_seconds: int = 86400
    options: dict[str, Any] = field(default_factory=dict)


class NextAction(str, Enum):
    NEXT_PROVIDER = "next_provider"
    STOP = "stop"


@dataclass(frozen=True)
class FallbackDecision:
    action: NextAction
    reason: str
