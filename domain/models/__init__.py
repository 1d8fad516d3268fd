"""
Domain models package - SQLAlchemy ORM models.
"""

from domain.models.database import (
    Base,
    engine,
    SessionLocal,
    make_engine,
    init_database,
    get_db_session,
)
from domain.models.storage import KeyValueEntry

__all__ = [
    # Database
    "Base",
    "engine",
    "SessionLocal",
    "make_engine",
    "init_database",
    "get_db_session",
    # Storage models
    "KeyValueEntry",
]
