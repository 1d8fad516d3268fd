"""
Database configuration and session management for the local key-value store.
"""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from app.config import settings

logger = logging.getLogger("ordering.database")

# Create SQLAlchemy Base
Base = declarative_base()


def make_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Create an engine for the given URL (defaults to settings.database_url)"""
    return create_engine(
        url or settings.database_url,
        echo=settings.db_echo if echo is None else echo,
        future=True,
    )


# Create engine
engine = make_engine()

# Create session factory
SessionLocal = sessionmaker(bind=engine, future=True)


def _ensure_sqlite_directory(bind: Engine) -> None:
    url = bind.url
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def init_database(bind: Optional[Engine] = None):
    """Initialize database schema"""
    bind = bind or engine
    _ensure_sqlite_directory(bind)
    with bind.begin() as conn:
        Base.metadata.create_all(bind=conn)
    logger.info("Key-value tables ready url=%s", bind.url.render_as_string(hide_password=True))


def get_db_session():
    """Yield a session and make sure it is closed afterwards"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
