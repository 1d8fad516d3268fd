"""
Key-value Repository - Data access layer for persisted store snapshots
"""

from typing import Dict, Iterable, Optional
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import KeyValueEntry


class KeyValueRepository(BaseRepository[KeyValueEntry]):
    """Repository for raw (already JSON-encoded) key-value entries"""

    def __init__(self, db: Session):
        super().__init__(db, KeyValueEntry)

    def get_by_id(self, key: str) -> Optional[KeyValueEntry]:
        """Get entry by key"""
        return self.db.query(KeyValueEntry).filter(KeyValueEntry.key == key).first()

    def get_value(self, key: str) -> Optional[str]:
        """Get the encoded value stored under key"""
        entry = self.get_by_id(key)
        return entry.value if entry else None

    def get_values(self, keys: Iterable[str]) -> Dict[str, str]:
        """Get encoded values for every key that is present"""
        keys = list(keys)
        if not keys:
            return {}
        rows = self.db.query(KeyValueEntry).filter(KeyValueEntry.key.in_(keys)).all()
        return {row.key: row.value for row in rows}

    def upsert(self, key: str, value: str) -> KeyValueEntry:
        """Insert or overwrite the value for key"""
        entry = self.get_by_id(key)
        if entry is None:
            return self.create(KeyValueEntry(key=key, value=value))
        entry.value = value
        return self.update(entry)

    def delete_many(self, keys: Iterable[str]) -> int:
        """Delete every listed key, returning how many rows went away"""
        keys = list(keys)
        if not keys:
            return 0
        result = (
            self.db.query(KeyValueEntry)
            .filter(KeyValueEntry.key.in_(keys))
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return result
