"""
In-Memory Condition Storage Implementation

Provides an in-memory storage for development and testing.
All data is lost when the application restarts.
"""

import asyncio
import logging
from typing import Dict, Optional

from core.database.storage_interface import (
    ConditionRecord,
    ConditionStore,
    DuplicateKeyError,
    RecordNotFoundError,
)

logger = logging.getLogger(__name__)


class InMemoryConditionStore(ConditionStore):
    """
    In-memory implementation of ConditionStore.

    Uses a dictionary keyed by normalized condition. The lock only guards
    the check-and-write inside a single operation, never across awaits
    made by callers.

    Note: Data is NOT persisted - all data is lost on restart.
    """

    def __init__(self):
        self._records: Dict[str, ConditionRecord] = {}
        self._lock = asyncio.Lock()
        logger.info("InMemoryConditionStore initialized (data will not persist)")

    async def find(self, key: str) -> Optional[ConditionRecord]:
        return self._records.get(key)

    async def create(self, record: ConditionRecord) -> ConditionRecord:
        async with self._lock:
            if record.key in self._records:
                raise DuplicateKeyError(
                    f"Condition '{record.key}' already stored",
                    details={"condition": record.key},
                )
            self._records[record.key] = record
        logger.debug(f"Stored condition '{record.key}'")
        return record

    async def update_medication(self, key: str, medication: str) -> ConditionRecord:
        async with self._lock:
            current = self._records.get(key)
            if current is None:
                raise RecordNotFoundError(
                    f"No stored condition '{key}'",
                    details={"condition": key},
                )
            if current.medication is not None:
                logger.debug(f"Medication for '{key}' already stored, keeping first write")
                return current
            updated = current.with_medication(medication)
            self._records[key] = updated
        logger.debug(f"Updated medication for '{key}'")
        return updated

    async def health_check(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._records)
