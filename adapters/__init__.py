"""
Adapters package - External collaborators.
Persistence gateway implementations and the detached-write scheduler.
"""

from adapters.storage import (
    InMemoryPersistenceGateway,
    PersistenceGateway,
    PersistenceScheduler,
    SqlPersistenceGateway,
    TaskGroupScheduler,
)

__all__ = [
    "InMemoryPersistenceGateway",
    "PersistenceGateway",
    "PersistenceScheduler",
    "SqlPersistenceGateway",
    "TaskGroupScheduler",
]
