#!/usr/bin/env python3
"""
PostgreSQL Service
-----------------
Handles PostgreSQL connections and the incremental select query.
"""

import asyncio
import logging
from typing import Optional

import asyncpg  # type: ignore[import-untyped]

from ..config.settings import DBSettings
from ..core.exceptions import SourceError, handle_postgres_error
from ..core.types import CursorValue, RowList
from .interfaces import SourceServiceInterface

logger = logging.getLogger("pg-redis-sync")

# Connection retry delays, in seconds
CONNECT_BACKOFF_BASE = 1.0
CONNECT_BACKOFF_MAX = 30.0


class PostgresService(SourceServiceInterface):
    """Reads changed rows from PostgreSQL."""

    def __init__(self, settings: DBSettings, max_retries: int = 5):
        """
        Initialize the PostgreSQL service.

        Args:
            settings: Connection settings
            max_retries: Connection attempts before giving up
        """
        self.settings = settings
        self.pool: Optional[asyncpg.Pool] = None
        self._lock = asyncio.Lock()
        self._max_retries = max_retries

    async def connect(self) -> bool:
        """
        Create the connection pool with retry logic and a health check.

        Returns:
            True if connection successful, False otherwise
        """
        async with self._lock:
            if self.pool is not None and await self._check_connection_health():
                return True

            dsn = self.settings.build_dsn()
            attempt = 0
            while attempt < self._max_retries:
                try:
                    self.pool = await asyncpg.create_pool(
                        dsn=dsn,
                        min_size=1,
                        max_size=self.settings.pool_size,
                        command_timeout=self.settings.query_timeout,
                    )

                    if await self._check_connection_health():
                        logger.info("Created PostgreSQL connection pool")
                        return True

                    logger.error("PostgreSQL connection established but unhealthy.")
                    await self._close_pool()
                except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
                    logger.error(f"Connection attempt {attempt + 1} failed: {e}")

                attempt += 1
                if attempt < self._max_retries:
                    delay = min(
                        CONNECT_BACKOFF_BASE * (2 ** (attempt - 1)), CONNECT_BACKOFF_MAX
                    )
                    await asyncio.sleep(delay)

            logger.error("Max connection attempts reached for PostgreSQL")
            self.pool = None
            return False

    async def _check_connection_health(self) -> bool:
        """
        Perform a health check on the PostgreSQL connection pool.

        Returns:
            True if healthy, False otherwise
        """
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return False

    async def query(self, query_text: str, cursor_value: CursorValue) -> RowList:
        """
        Run the select query with the cursor bound as ``$1``.

        Args:
            query_text: Select query, including its LIMIT clause
            cursor_value: Current cursor position

        Returns:
            List of rows as column -> value dictionaries

        Raises:
            SourceError: If the pool is not available or the query failed
        """
        if self.pool is None:
            raise SourceError("PostgreSQL connection pool is not initialized")

        records = await handle_postgres_error(
            "select changed rows", self.pool.fetch, query_text, cursor_value
        )
        return [dict(record) for record in records]

    async def _close_pool(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

    async def close(self) -> None:
        """Close PostgreSQL connections."""
        try:
            await self._close_pool()
            logger.info("Closed PostgreSQL connection pool")
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Error closing PostgreSQL connection pool: {e}")
