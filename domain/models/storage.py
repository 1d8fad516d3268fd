"""
Key-value storage model backing the persistence gateway.
"""

from sqlalchemy import Column, Text, TIMESTAMP
from sqlalchemy.sql import func

from domain.models.database import Base


class KeyValueEntry(Base):
    """One JSON-encoded value per storage key"""

    __tablename__ = "kv_entry"

    key = Column(Text, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )
