"""
Base store for the stateful layer.
Stores apply a synchronous in-memory transition, then hand the resulting
snapshot to a detached persistence task.
"""

from typing import Any
from abc import ABC
import logging

from adapters.storage import Key, PersistenceGateway, PersistenceScheduler


class BaseStore(ABC):
    """
    Base store providing logging helpers and the two-step
    "transition, then detached write" persistence contract.
    All stores should inherit from this class.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        scheduler: PersistenceScheduler,
        logger_name: str,
    ):
        self.gateway = gateway
        self.scheduler = scheduler
        self.logger = logging.getLogger(logger_name)
        self.loaded = False

    async def load(self) -> None:
        """One-time startup read from the gateway. Subclasses extend _load."""
        await self._load()
        self.loaded = True

    async def _load(self) -> None:
        raise NotImplementedError(f"{self.__class__.__name__} must implement _load()")

    def persist(self, key: Key, value: Any) -> None:
        """Schedule a write of an already JSON-ready snapshot; never awaited"""
        self.scheduler.schedule(self.gateway.set, key, value)

    def forget(self, key: Key) -> None:
        """Schedule removal of a key; never awaited"""
        self.scheduler.schedule(self.gateway.remove, key)

    def log_info(self, message: str, **kwargs):
        """Log info message with structured data"""
        extra_data = " ".join([f"{k}={v}" for k, v in kwargs.items()])
        self.logger.info(f"{message} {extra_data}".strip())

    def log_debug(self, message: str, **kwargs):
        """Log debug message with structured data"""
        extra_data = " ".join([f"{k}={v}" for k, v in kwargs.items()])
        self.logger.debug(f"{message} {extra_data}".strip())

    def log_warning(self, message: str, **kwargs):
        """Log warning message with structured data"""
        extra_data = " ".join([f"{k}={v}" for k, v in kwargs.items()])
        self.logger.warning(f"{message} {extra_data}".strip())

    def log_error(self, message: str, **kwargs):
        """Log error message with structured data"""
        extra_data = " ".join([f"{k}={v}" for k, v in kwargs.items()])
        self.logger.error(f"{message} {extra_data}".strip())
