"""
SQLAlchemy Core table definitions for the search memory store.

Tables are created on demand with create_tables(); nothing runs at import time.
"""

from sqlalchemy import JSON, Column, DateTime, Engine, Integer, MetaData, String, Table, Text, func

from utils.logger import get_logger

logger = get_logger(__name__)

metadata = MetaData()

search_memories = Table(
    "search_memories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("conversation_id", String(255), nullable=False, index=True),
    Column("user_id", String(255), nullable=True, index=True),
    Column("query", Text, nullable=False),
    Column("provider", String(64), nullable=True),
    Column("results", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)


def create_tables(engine: Engine) -> None:
    """Create missing tables (existing tables are left untouched)."""
    metadata.create_all(engine, checkfirst=True)
    logger.info("Search memory tables ready")
