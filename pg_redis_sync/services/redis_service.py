#!/usr/bin/env python3
"""
Redis Service
------------
Handles the Redis connection, cursor reads and pipelined writes.
"""

import asyncio
import datetime
import logging
from typing import Any, List, Optional, Tuple

import redis.asyncio as aioredis
from redis.asyncio.client import Redis

from ..config.settings import RedisSettings
from ..core.exceptions import CacheError, handle_redis_error
from ..core.types import RedisKey, RedisValue
from .interfaces import CachePipelineInterface, CacheServiceInterface

logger = logging.getLogger("pg-redis-sync")

# Connection retry delays, in seconds
CONNECT_BACKOFF_BASE = 1.0
CONNECT_BACKOFF_MAX = 30.0


def encode_value(value: Any) -> RedisValue:
    """
    Convert a projected value into something Redis accepts.

    Strings, bytes and numbers are sent as they are. Booleans are stored as
    ``1``/``0``, missing values as an empty string and anything else
    (decimals, UUIDs, timestamps) as its text form.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (str, bytes, int, float)):
        return value
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    return str(value)


class RedisPipeline(CachePipelineInterface):
    """Batch of SET commands executed in a single MULTI/EXEC."""

    def __init__(self, client: Redis):
        self._client = client
        self._commands: List[Tuple[RedisKey, RedisValue]] = []

    def set(self, key: RedisKey, value: Any) -> None:
        self._commands.append((key, encode_value(value)))

    def __len__(self) -> int:
        return len(self._commands)

    async def _execute(self) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            for key, value in self._commands:
                pipe.set(key, value)
            await pipe.execute()

    async def commit(self) -> None:
        """
        Send all queued writes in one transaction.

        Raises:
            CacheError: If the transaction failed
        """
        if not self._commands:
            return
        await handle_redis_error("execute pipeline", self._execute)
        logger.debug(f"Executed pipeline with {len(self._commands)} commands")
        self._commands.clear()


class RedisService(CacheServiceInterface):
    """Service for Redis operations."""

    def __init__(self, settings: RedisSettings, max_retries: int = 5):
        """
        Initialize the Redis service.

        Args:
            settings: Connection settings
            max_retries: Connection attempts before giving up
        """
        self.settings = settings
        self.client: Optional[Redis] = None
        self._lock = asyncio.Lock()
        self._max_retries = max_retries

    def _create_client(self) -> Redis:
        if self.settings.url:
            return aioredis.from_url(self.settings.url, decode_responses=True)
        return aioredis.Redis(**self.settings.client_kwargs())

    async def connect(self) -> bool:
        """
        Establish connection to Redis with retry logic and health checks.

        Returns:
            True if connection successful, False otherwise
        """
        async with self._lock:
            if self.client is not None and await self._check_connection_health(
                self.client
            ):
                return True

            attempt = 0
            while attempt < self._max_retries:
                client = self._create_client()
                if await self._check_connection_health(client):
                    self.client = client
                    logger.info("Connected to Redis")
                    return True

                await client.aclose()
                attempt += 1
                logger.error(f"Redis connection attempt {attempt} failed")
                if attempt < self._max_retries:
                    delay = min(
                        CONNECT_BACKOFF_BASE * (2 ** (attempt - 1)), CONNECT_BACKOFF_MAX
                    )
                    await asyncio.sleep(delay)

            logger.error("Max connection attempts reached for Redis")
            return False

    async def _check_connection_health(self, client: Redis) -> bool:
        """
        Perform a health check on a Redis connection.

        Args:
            client: Redis client to check

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(await client.ping())
        except (aioredis.RedisError, OSError) as e:
            logger.error(f"Health check failed: {e}")
            return False

    def _require_client(self) -> Redis:
        if self.client is None:
            raise CacheError("Redis client is not connected")
        return self.client

    async def get(self, key: RedisKey) -> Optional[str]:
        """
        Read a key.

        Args:
            key: Key to read

        Returns:
            The stored value or None if the key does not exist

        Raises:
            CacheError: If the client is not connected or the read failed
        """
        client = self._require_client()
        value = await handle_redis_error(f"get '{key}'", client.get, key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def pipeline(self) -> RedisPipeline:
        return RedisPipeline(self._require_client())

    async def close(self) -> None:
        """Close Redis connections."""
        if self.client is None:
            return
        try:
            await self.client.aclose()
            logger.info("Closed Redis connection")
        except (aioredis.RedisError, OSError) as e:
            logger.error(f"Error closing Redis connection: {e}")
        finally:
            self.client = None
