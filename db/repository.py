"""
Repository layer for search memory persistence.

Design principles:
- Functions do NOT commit - caller commits for transaction control
- Uses SQLAlchemy Core (insert/select/delete) not ORM
"""

from typing import Any

from sqlalchemy import delete, desc, insert, select
from sqlalchemy.orm import Session

from db.tables import search_memories
from utils.logger import get_logger

logger = get_logger(__name__)


def save_search_memory(
    db: Session,
    conversation_id: str,
    query: str,
    results: list[dict[str, Any]],
    provider: str | None = None,
    user_id: str | None = None,
) -> int:
    """
    Insert one search memory row.

    Args:
        db: Database session
        conversation_id: Conversation the search belongs to
        query: Resolved query text
        results: Serialized top results
        provider: Provider that produced the results
        user_id: Optional user scope

    Returns:
        int: id of the new row

    Note:
        Does NOT commit. Caller must commit.
    """
    stmt = insert(search_memories).values(
        conversation_id=conversation_id,
        user_id=user_id,
        query=query,
        provider=provider,
        results=results,
    )
    memory_id = db.execute(stmt).inserted_primary_key[0]

    logger.debug(f"Saved search memory {memory_id} for conversation {conversation_id}")
    return memory_id


def get_search_memories(
    db: Session,
    conversation_id: str | None = None,
    user_id: str | None = None,
    limit: int = 10,
) -> list[dict[str, Any]]:
    """
    Get stored search memories, newest first.

    Filters are optional and combined with AND.
    """
    stmt = select(search_memories)
    if conversation_id is not None:
        stmt = stmt.where(search_memories.c.conversation_id == conversation_id)
    if user_id is not None:
        stmt = stmt.where(search_memories.c.user_id == user_id)
    stmt = stmt.order_by(desc(search_memories.c.created_at), desc(search_memories.c.id)).limit(
        limit
    )

    rows = db.execute(stmt).mappings().all()
    return [dict(row) for row in rows]


def delete_user_search_memories(db: Session, user_id: str) -> int:
    """
    Delete every memory row for a user.

    Note:
        Does NOT commit. Caller must commit.
    """
    result = db.execute(delete(search_memories).where(search_memories.c.user_id == user_id))
    return result.rowcount or 0
