from core.base.base_store import BaseStore

__all__ = ["BaseStore"]
