import asyncio
import logging
from typing import Any, Dict, Optional

import asyncpg

from .postgres_db import PostgresDatabase
from .storage_interface import (
    ConditionRecord,
    ConditionStore,
    DuplicateKeyError,
    RecordNotFoundError,
    StorageException,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.InterfaceError,
    asyncpg.exceptions.PostgresConnectionError,
)

_COLUMNS = "condition, treatment, prevention, specialty, medication, created_at, updated_at"


class PostgresConditionStore(ConditionStore):
    """
    PostgreSQL implementation of ConditionStore.

    Uniqueness of the normalized condition is enforced by the primary key.
    Medication is written with a conditional UPDATE so concurrent writers
    cannot overwrite each other.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, db_instance: Optional[PostgresDatabase] = None):
        """
        Initialize PostgreSQL storage backend.

        Args:
            config: Connection settings (host, port, user, password, database, pool sizes)
            db_instance: Pre-built PostgresDatabase (takes precedence over config)
        """
        self.db = db_instance or PostgresDatabase(config)
        logger.info("Initialized PostgresConditionStore")

    async def initialize(self) -> None:
        try:
            await self.db.initialize()
        except (asyncpg.PostgresError, *_CONNECTION_ERRORS) as e:
            logger.error(f"Failed to initialize PostgreSQL: {e}")
            raise StorageUnavailableError(f"Failed to connect to PostgreSQL: {e}") from e

    async def find(self, key: str) -> Optional[ConditionRecord]:
        try:
            row = await self.db.fetch_one(
                f"SELECT {_COLUMNS} FROM conditions WHERE condition = $1", key
            )
        except _CONNECTION_ERRORS as e:
            logger.error(f"Condition lookup failed for '{key}': {e}")
            raise StorageUnavailableError(f"Condition lookup failed: {e}") from e
        except asyncpg.PostgresError as e:
            raise StorageException(f"Condition lookup failed: {e}") from e

        return ConditionRecord.from_row(row) if row else None

    async def create(self, record: ConditionRecord) -> ConditionRecord:
        try:
            row = await self.db.fetch_one(
                f"""
                INSERT INTO conditions (condition, treatment, prevention, specialty, medication)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {_COLUMNS}
                """,
                record.key,
                record.treatment,
                record.prevention,
                record.specialty,
                record.medication,
            )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateKeyError(
                f"Condition '{record.key}' already stored",
                details={"condition": record.key},
            ) from e
        except _CONNECTION_ERRORS as e:
            logger.error(f"Condition insert failed for '{record.key}': {e}")
            raise StorageUnavailableError(f"Condition insert failed: {e}") from e
        except asyncpg.PostgresError as e:
            raise StorageException(f"Condition insert failed: {e}") from e

        logger.info(f"Condition stored: {record.key}")
        return ConditionRecord.from_row(row)

    async def update_medication(self, key: str, medication: str) -> ConditionRecord:
        try:
            row = await self.db.fetch_one(
                f"""
                UPDATE conditions
                SET medication = $2, updated_at = NOW()
                WHERE condition = $1 AND medication IS NULL
                RETURNING {_COLUMNS}
                """,
                key,
                medication,
            )
        except _CONNECTION_ERRORS as e:
            logger.error(f"Medication update failed for '{key}': {e}")
            raise StorageUnavailableError(f"Medication update failed: {e}") from e
        except asyncpg.PostgresError as e:
            raise StorageException(f"Medication update failed: {e}") from e

        if row:
            logger.info(f"Medication stored: {key}")
            return ConditionRecord.from_row(row)

        # Either the record is missing or another writer got there first
        current = await self.find(key)
        if current is None:
            raise RecordNotFoundError(f"No stored condition '{key}'", details={"condition": key})
        logger.debug(f"Medication for '{key}' already stored, keeping first write")
        return current

    async def health_check(self) -> bool:
        try:
            await self.db.execute("SELECT 1")
            return True
        except (RuntimeError, asyncpg.PostgresError, *_CONNECTION_ERRORS) as e:
            logger.warning(f"PostgreSQL health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.db.close()
