"""
Core package - shared building blocks for the stateful stores.
"""

from core.base import BaseStore

__all__ = ["BaseStore"]
