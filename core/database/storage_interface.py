"""
Database Abstraction Layer - Condition Storage Interface

Provides a backend-agnostic interface for the condition knowledge store,
enabling support for multiple backends without changing application code.

Architecture:
    ConditionStore (ABC)
        ├── PostgresConditionStore (asyncpg pool)
        └── InMemoryConditionStore (development / tests)

    ConditionStoreFactory: Creates appropriate backend based on config

Environment Variables:
    DB_BACKEND: 'postgres' | 'inmemory'
    DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_NAME
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import status

from core.error_handling import AdvisorServiceError

logger = logging.getLogger(__name__)


class EnrichmentState(str, Enum):
    """
    Per-condition enrichment progress.

    ABSENT means no record is stored for the key, so a ConditionRecord
    itself is always INFO_ONLY or INFO_AND_MEDICATION.
    """
    ABSENT = "absent"
    INFO_ONLY = "info_only"
    INFO_AND_MEDICATION = "info_and_medication"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConditionRecord:
    """One stored record per normalized condition."""
    key: str
    treatment: Optional[str] = None
    prevention: Optional[str] = None
    specialty: Optional[str] = None
    medication: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def state(self) -> EnrichmentState:
        if self.medication is None:
            return EnrichmentState.INFO_ONLY
        return EnrichmentState.INFO_AND_MEDICATION

    def with_medication(self, medication: str) -> "ConditionRecord":
        return replace(self, medication=medication, updated_at=_utcnow())

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ConditionRecord":
        """Build a record from a database row keyed by column name."""
        return cls(
            key=row["condition"],
            treatment=row.get("treatment"),
            prevention=row.get("prevention"),
            specialty=row.get("specialty"),
            medication=row.get("medication"),
            created_at=row.get("created_at") or _utcnow(),
            updated_at=row.get("updated_at") or _utcnow(),
        )


class StorageException(AdvisorServiceError):
    """Base exception for storage errors."""
    error_code = "STORAGE_ERROR"
    user_message = "Storage operation failed"


class DuplicateKeyError(StorageException):
    """A record for the key already exists."""
    http_status = status.HTTP_409_CONFLICT
    error_code = "DUPLICATE_KEY"
    user_message = "Condition already stored"
    log_level = "info"


class RecordNotFoundError(StorageException):
    """No record exists for the key."""
    error_code = "RECORD_NOT_FOUND"
    user_message = "Condition record not found"


class StorageUnavailableError(StorageException):
    """The storage backend cannot be reached."""
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "STORAGE_UNAVAILABLE"
    user_message = "Condition store unavailable"
    is_transient = True


class ConditionStore(ABC):
    """
    Abstract base class for condition storage backends.

    Defines the interface that all storage implementations must provide.
    Every operation is short-lived; no lock or transaction spans calls.
    """

    async def initialize(self) -> None:
        """Prepare the backend (connection pool, schema). Optional."""

    @abstractmethod
    async def find(self, key: str) -> Optional[ConditionRecord]:
        """
        Look up the record for a normalized key.

        Returns:
            ConditionRecord or None if the condition was never stored

        Raises:
            StorageUnavailableError: If the backend cannot be reached
        """

    @abstractmethod
    async def create(self, record: ConditionRecord) -> ConditionRecord:
        """
        Insert a new record.

        Raises:
            DuplicateKeyError: If a record for record.key already exists
        """

    @abstractmethod
    async def update_medication(self, key: str, medication: str) -> ConditionRecord:
        """
        Set the medication field of an existing record.

        Only the first write lands; once medication is stored it is
        immutable and later calls return the stored record unchanged.

        Raises:
            RecordNotFoundError: If no record exists for key
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if storage backend is healthy and accessible."""

    async def close(self) -> None:
        """Release backend resources. Optional."""


class ConditionStoreFactory:
    """
    Factory for creating appropriate ConditionStore backend instances.

    Decouples storage backend selection from application code.
    """

    @classmethod
    def create(cls, backend: str, connection_config: Optional[Dict[str, Any]] = None) -> ConditionStore:
        """
        Create a ConditionStore instance for the specified backend.

        Args:
            backend: Backend type ('postgres', 'inmemory')
            connection_config: Backend-specific configuration

        Raises:
            ValueError: If backend is unknown
        """
        backend_lower = backend.lower().strip()

        if backend_lower == "postgres":
            logger.info("Creating PostgresConditionStore instance")
            from .postgres_condition_storage import PostgresConditionStore
            return PostgresConditionStore(connection_config or {})

        elif backend_lower == "inmemory":
            logger.info("Creating InMemoryConditionStore instance")
            from .inmemory_condition_storage import InMemoryConditionStore
            return InMemoryConditionStore()

        raise ValueError(
            f"Unsupported storage backend: {backend}. Only 'postgres' and 'inmemory' are supported."
        )

    @classmethod
    def from_config(cls, database_config) -> ConditionStore:
        """Create a store from a DatabaseConfig section."""
        return cls.create(
            database_config.backend,
            {
                "host": database_config.host,
                "port": database_config.port,
                "user": database_config.user,
                "password": database_config.password,
                "database": database_config.database,
                "pool_min_size": database_config.pool_min_size,
                "pool_max_size": database_config.pool_max_size,
            },
        )
