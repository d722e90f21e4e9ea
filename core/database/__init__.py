"""
Database package for the Condition Advisor service.

Provides:
- ConditionStore interface and ConditionRecord model
- Backend implementations (PostgreSQL via asyncpg, in-memory)
- ConditionStoreFactory for configuration-driven backend selection
"""

from .storage_interface import (
    ConditionRecord,
    ConditionStore,
    ConditionStoreFactory,
    DuplicateKeyError,
    EnrichmentState,
    RecordNotFoundError,
    StorageException,
    StorageUnavailableError,
)
from .inmemory_condition_storage import InMemoryConditionStore

__all__ = [
    "ConditionRecord",
    "ConditionStore",
    "ConditionStoreFactory",
    "DuplicateKeyError",
    "EnrichmentState",
    "RecordNotFoundError",
    "StorageException",
    "StorageUnavailableError",
    "InMemoryConditionStore",
]
