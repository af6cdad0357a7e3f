#!/usr/bin/env python3
"""
Service Interfaces
----------------
Abstract base classes for the PostgreSQL source and the Redis cache.

The sync loop only depends on these interfaces, so tests can run it
against in-memory implementations.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..core.types import CursorValue, RedisKey, RowList


class CachePipelineInterface(ABC):
    """Interface for a batch of cache writes sent in one exchange."""

    @abstractmethod
    def set(self, key: RedisKey, value: Any) -> None:
        """
        Queue a write of ``value`` under ``key`` without expiry.

        Args:
            key: Key to write
            value: Value to store
        """
        pass

    @abstractmethod
    async def commit(self) -> None:
        """
        Execute all queued writes atomically.

        Raises:
            CacheError: If the exchange failed; none of the writes are applied
        """
        pass


class CacheServiceInterface(ABC):
    """Interface for cache operations."""

    @abstractmethod
    async def connect(self) -> bool:
        """
        Establish connection to the cache.

        Returns:
            True if connection successful, False otherwise
        """
        pass

    @abstractmethod
    async def get(self, key: RedisKey) -> Optional[str]:
        """
        Read a key.

        Args:
            key: Key to read

        Returns:
            The stored value or None if the key does not exist

        Raises:
            CacheError: If the read failed
        """
        pass

    @abstractmethod
    def pipeline(self) -> CachePipelineInterface:
        """Start a new batch of writes."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close cache connections."""
        pass


class SourceServiceInterface(ABC):
    """Interface for source database operations."""

    @abstractmethod
    async def connect(self) -> bool:
        """
        Establish connection to the database.

        Returns:
            True if connection successful, False otherwise
        """
        pass

    @abstractmethod
    async def query(self, query_text: str, cursor_value: CursorValue) -> RowList:
        """
        Run the select query with the cursor bound as its only parameter.

        Args:
            query_text: Select query, including its LIMIT clause
            cursor_value: Current cursor position

        Returns:
            List of rows as column -> value dictionaries

        Raises:
            SourceError: If the query failed
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close database connections."""
        pass
