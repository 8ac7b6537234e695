"""SQLAlchemy-backed memory store that keeps the top results of each search."""

from collections.abc import Callable, Sequence

from sqlalchemy.orm import Session

from db.repository import save_search_memory
from models.search_response import SearchResult
from utils.logger import get_logger

logger = get_logger(__name__)


class SqlSearchMemoryStore:
    """
    Persists search hand-offs into the search_memories table.

    Each store() call runs in its own session and commits; on failure the
    session is rolled back and the exception propagates to the caller.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def store(
        self,
        query: str,
        results: Sequence[SearchResult],
        conversation_id: str,
        user_id: str | None = None,
    ) -> int:
        provider = results[0].provider if results else None
        db = self._session_factory()
        try:
            memory_id = save_search_memory(
                db,
                conversation_id=conversation_id,
                query=query,
                results=[r.to_dict() for r in results],
                provider=provider,
                user_id=user_id,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        logger.info(
            "Stored search memory",
            extra={
                "extra_fields": {
                    "memory_id": memory_id,
                    "conversation_id": conversation_id,
                    "results": len(results),
                }
            },
        )
        return memory_id
