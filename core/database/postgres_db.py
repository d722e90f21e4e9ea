"""
PostgreSQL database connection module using asyncpg.
Owns the connection pool and the schema of the condition knowledge table.
"""

import logging
from typing import Optional, Dict, Any
from contextlib import asynccontextmanager

import asyncpg

logger = logging.getLogger(__name__)


CONDITIONS_SCHEMA = """
CREATE TABLE IF NOT EXISTS conditions (
    condition   TEXT PRIMARY KEY,
    treatment   TEXT,
    prevention  TEXT,
    specialty   TEXT,
    medication  TEXT,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


class PostgresDatabase:
    """Database connector for PostgreSQL."""

    def __init__(self, connection_config: Optional[Dict[str, Any]] = None):
        connection_config = connection_config or {}
        self.pool: Optional[asyncpg.Pool] = None
        self.initialized = False

        self.host = connection_config.get("host", "localhost")
        self.port = connection_config.get("port", 5432)
        self.user = connection_config.get("user", "postgres")
        self.password = connection_config.get("password", "")
        self.database = connection_config.get("database", "condition_advisor")
        self.min_size = connection_config.get("pool_min_size", 2)
        self.max_size = connection_config.get("pool_max_size", 10)

    async def initialize(self):
        """Initialize database connection pool and ensure the schema exists."""
        self.pool = await asyncpg.create_pool(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database,
            min_size=self.min_size,
            max_size=self.max_size,
        )
        logger.info(f"✓ PostgreSQL pool created at {self.host}:{self.port}")

        async with self.pool.acquire() as conn:
            await conn.execute(CONDITIONS_SCHEMA)

        self.initialized = True

    async def close(self):
        if self.pool is not None:
            await self.pool.close()
            self.pool = None
            self.initialized = False
            logger.info("PostgreSQL pool closed")

    @asynccontextmanager
    async def get_connection(self):
        """
        Context manager to acquire a database connection from the pool.

        Usage:
            async with db.get_connection() as conn:
                await conn.execute("SELECT 1")
        """
        if not self.pool:
            raise RuntimeError("PostgreSQL pool not initialized. Call await initialize() first.")

        conn = await self.pool.acquire()
        try:
            yield conn
        finally:
            await self.pool.release(conn)

    async def fetch_one(self, query: str, *params) -> Optional[Dict[str, Any]]:
        async with self.get_connection() as conn:
            result = await conn.fetchrow(query, *params)
            return dict(result) if result else None

    async def execute(self, query: str, *params) -> str:
        async with self.get_connection() as conn:
            return await conn.execute(query, *params)
