"""
Repositories package - Data access layer.
"""

from repositories.base import BaseRepository
from repositories.kv_repository import KeyValueRepository

__all__ = [
    "BaseRepository",
    "KeyValueRepository",
]
