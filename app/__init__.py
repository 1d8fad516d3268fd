"""
App package - Application configuration and core utilities.
Contains settings and the exception types shared by the stores and adapters.
"""

from app.config import settings
from app.exceptions import StorageError

__all__ = [
    "settings",
    "StorageError",
]
