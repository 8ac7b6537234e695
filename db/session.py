"""
SQLAlchemy session management for the search memory store.
"""

from sqlalchemy import Engine
from sqlalchemy.orm import sessionmaker


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to engine."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)
