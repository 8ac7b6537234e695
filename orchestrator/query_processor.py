import re
from collections import Counter
from collections.abc import Mapping, Sequence
from typing import Any

from models.query_descriptor import (
    DEFAULT_MAX_RESULTS,
    DEFAULT_TIME_RANGE,
    Intent,
    QueryDescriptor,
    TimeRange,
)
from orchestrator.search_types import QueryContext
from utils.logger import get_logger

logger = get_logger(__name__)

MAX_CONTEXT_MESSAGES = 5
MAX_KEYWORDS = 10
MAX_ENTITIES = 5
MAX_ADDED_KEYWORDS = 3
MAX_ADDED_ENTITIES = 2
MAX_SUGGESTIONS = 5

STOP_WORDS = frozenset(
    [
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
        "by", "is", "are", "was", "were", "be", "been", "being", "have", "has", "had",
        "do", "does", "did", "will", "would", "could", "should", "may", "might", "can",
        "i", "you", "he", "she", "it", "we", "they", "me", "him", "her", "us", "them",
        "my", "your", "his", "its", "our", "their", "this", "that", "these", "those",
    ]
)  # fmt: skip

QUESTION_WORDS = frozenset(["what", "when", "where", "who", "why", "how", "which", "whose"])

# Checked in order; the first intent with a match wins.
INTENT_KEYWORDS: dict[Intent, tuple[str, ...]] = {
    "information": ("what is", "define", "explain", "meaning", "definition"),
    "current_events": ("news", "latest", "recent", "today", "current", "breaking", "update"),
    "research": ("study", "research", "analysis", "report", "paper", "findings"),
    "troubleshooting": ("error", "problem", "issue", "fix", "solve", "debug", "help"),
}

INTENT_POLICY: dict[Intent, tuple[int, TimeRange]] = {
    "current_events": (15, "week"),
    "research": (20, "year"),
    "troubleshooting": (10, "all"),
    "information": (DEFAULT_MAX_RESULTS, DEFAULT_TIME_RANGE),
}

# Explicit recency cues in the raw query override the intent window.
RECENCY_CUES: tuple[tuple[TimeRange, tuple[str, ...]], ...] = (
    ("day", ("today", "now")),
    ("week", ("this week", "recent")),
    ("month", ("this month", "latest")),
)

_ENTITY_RE = re.compile(r"\b[A-Z][a-z]+\b")
_PUNCT_RE = re.compile(r"[^\w\s]")


class QueryProcessor:
    """Turns a raw query plus recent dialogue into a QueryDescriptor."""

    def process(
        self,
        raw_query: str,
        recent_messages: Sequence[Any] | None,
        conversation_id: str,
        user_id: str | None = None,
    ) -> QueryDescriptor:
        """
        Build an enhanced, intent-classified descriptor.

        Never raises: on unusable input the raw query is echoed back with the
        default result count and recency window.
        """
        raw_query = raw_query if isinstance(raw_query, str) else str(raw_query or "")
        try:
            if not raw_query.strip():
                return self._fallback_descriptor(raw_query, conversation_id, user_id)

            context = self.analyze_context(recent_messages or [], conversation_id)
            enhanced = self.enhance_query(raw_query, context)
            intent = self.detect_intent(raw_query, context)
            max_results, time_range = self._policy_for(intent, raw_query)

            return QueryDescriptor(
                raw_query=raw_query,
                enhanced_query=enhanced,
                context=context.recent_messages,
                user_id=user_id,
                max_results=max_results,
                allow_cache=True,
                time_range=time_range,
                conversation_id=conversation_id,
                intent=intent,
                keywords=context.keywords,
                entities=context.entities,
            )
        except Exception as e:
            logger.warning(
                f"Query processing failed, using raw query: {e}",
                extra={"extra_fields": {"conversation_id": conversation_id}},
            )
            return self._fallback_descriptor(raw_query, conversation_id, user_id)

    # ---------- context analysis ----------

    def analyze_context(self, messages: Sequence[Any], conversation_id: str = "") -> QueryContext:
        bodies = [self._message_text(m) for m in messages]
        recent = tuple(b for b in bodies if b)[-MAX_CONTEXT_MESSAGES:]

        joined = " ".join(recent)
        return QueryContext(
            conversation_id=conversation_id,
            recent_messages=recent,
            keywords=tuple(self.extract_keywords(joined.lower())),
            entities=tuple(self.extract_entities(joined)),
        )

    @staticmethod
    def _message_text(message: Any) -> str:
        if isinstance(message, str):
            return message.strip()
        if isinstance(message, Mapping):
            return str(message.get("content") or "").strip()
        content = getattr(message, "content", None)
        return str(content).strip() if content else ""

    def extract_keywords(self, text: str) -> list[str]:
        words = [
            w
            for w in _PUNCT_RE.sub(" ", text.lower()).split()
            if len(w) > 2 and w not in STOP_WORDS and w not in QUESTION_WORDS
        ]
        # most_common keeps first-seen order for equal counts
        return [word for word, _ in Counter(words).most_common(MAX_KEYWORDS)]

    def extract_entities(self, text: str) -> list[str]:
        entities: list[str] = []
        for match in _ENTITY_RE.findall(text):
            if len(match) <= 2 or match.lower() in STOP_WORDS or match in entities:
                continue
            entities.append(match)
            if len(entities) >= MAX_ENTITIES:
                break
        return entities

    # ---------- enhancement & classification ----------

    def enhance_query(self, raw_query: str, context: QueryContext) -> str:
        enhanced = raw_query.strip()
        query_lower = enhanced.lower()

        keywords = [
            k
            for k in context.keywords
            if k.lower() not in query_lower and len(k) > 2 and k.lower() not in STOP_WORDS
        ][:MAX_ADDED_KEYWORDS]
        entities = [
            e for e in context.entities if e.lower() not in query_lower and len(e) > 2
        ][:MAX_ADDED_ENTITIES]

        parts = [enhanced, *keywords, *entities]
        return " ".join(p for p in parts if p).strip()

    def detect_intent(self, raw_query: str, context: QueryContext) -> Intent:
        combined = f"{raw_query.lower()} {' '.join(context.recent_messages).lower()}"
        for intent, keywords in INTENT_KEYWORDS.items():
            if any(keyword in combined for keyword in keywords):
                return intent
        return "information"

    def _policy_for(self, intent: Intent, raw_query: str) -> tuple[int, TimeRange]:
        max_results, time_range = INTENT_POLICY.get(intent, INTENT_POLICY["information"])
        cue = self.detect_recency_cue(raw_query)
        return max_results, cue or time_range

    @staticmethod
    def detect_recency_cue(raw_query: str) -> TimeRange | None:
        query_lower = raw_query.lower()
        for time_range, cues in RECENCY_CUES:
            for cue in cues:
                if re.search(rf"\b{re.escape(cue)}\b", query_lower):
                    return time_range
        return None

    @staticmethod
    def has_question_words(text: str) -> bool:
        words = set(_PUNCT_RE.sub(" ", text.lower()).split())
        return bool(words & QUESTION_WORDS)

    # ---------- suggestions ----------

    def generate_search_suggestions(self, context: QueryContext, original_query: str) -> list[str]:
        """
        Build follow-up query suggestions from context keywords, entities and
        canonical rephrasings.
        """
        suggestions: list[str] = []
        query_lower = original_query.lower()

        for keyword in context.keywords[:3]:
            if keyword.lower() not in query_lower:
                suggestions.append(f"{original_query} {keyword}")

        for entity in context.entities[:2]:
            if entity.lower() not in query_lower:
                suggestions.append(f"{original_query} {entity}")

        if not self.has_question_words(original_query):
            suggestions.append(f"what is {original_query}")
            suggestions.append(f"how to {original_query}")

        return suggestions[:MAX_SUGGESTIONS]

    @staticmethod
    def _fallback_descriptor(
        raw_query: str, conversation_id: str, user_id: str | None
    ) -> QueryDescriptor:
        return QueryDescriptor(
            raw_query=raw_query,
            enhanced_query=raw_query,
            user_id=user_id,
            max_results=DEFAULT_MAX_RESULTS,
            time_range=DEFAULT_TIME_RANGE,
            conversation_id=conversation_id,
        )
