"""
Database package for the search memory store.
Provides the SQLAlchemy engine, session factory, table definitions and repository functions.
"""

from db.engine import create_db_engine, get_database_url
from db.memory_store import SqlSearchMemoryStore
from db.repository import (
    delete_user_search_memories,
    get_search_memories,
    save_search_memory,
)
from db.session import create_session_factory
from db.tables import create_tables, metadata, search_memories

__all__ = [
    "SqlSearchMemoryStore",
    "create_db_engine",
    "create_session_factory",
    "create_tables",
    "delete_user_search_memories",
    "get_database_url",
    "get_search_memories",
    "metadata",
    "save_search_memory",
    "search_memories",
]
