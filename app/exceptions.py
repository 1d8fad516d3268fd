from typing import Any, Optional


class StorageError(Exception):
    """Raised by the storage layer when a key cannot be read, written or decoded.

    The persistence gateway catches this and degrades to ``None``/``False``;
    it never reaches the cart or rewards stores.

    Attributes:
        message: human-readable message
        key: storage key involved, if any
    """

    def __init__(self, message: str = "Storage failure", key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.key = key

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"message": self.message}
        if self.key:
            payload["key"] = self.key
        return payload

    def __str__(self) -> str:
        if self.key:
            return f"{self.message} (key={self.key})"
        return self.message
