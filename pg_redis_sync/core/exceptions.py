#!/usr/bin/env python3
"""
Exceptions Module
---------------
Custom exceptions for PostgreSQL to Redis synchronization.

Every failure raised by the sync loop is a ``SyncError``. The subclass tells
the loop what to do with it:

- ``ConfigurationError``: fatal, never retried.
- ``TransientIOError``: retried with backoff (except on the first iteration).
- ``DataIntegrityError``: fails the current iteration, retried like I/O errors.
- ``BackoffExhaustedError``: terminal, wraps the last retried error.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, TypeVar

import asyncpg  # type: ignore[import-untyped]
import redis.asyncio as aioredis

logger = logging.getLogger("pg-redis-sync")

T = TypeVar("T")


class SyncError(Exception):
    """Base exception for synchronization errors."""

    pass


class ConfigurationError(SyncError):
    """Exception for configuration errors."""

    pass


class ConversionError(ConfigurationError):
    """Exception for text that cannot be parsed into the cursor type."""

    pass


class TemplateError(ConfigurationError):
    """Exception for malformed key/value templates."""

    pass


class TransientIOError(SyncError):
    """Exception for I/O failures that may succeed on a later attempt."""

    pass


class SourceError(TransientIOError):
    """Exception for PostgreSQL errors."""

    pass


class CacheError(TransientIOError):
    """Exception for Redis errors."""

    pass


class DataIntegrityError(SyncError):
    """Exception for rows that violate the cursor contract."""

    pass


class MissingCursorColumnError(DataIntegrityError):
    """Exception for a row without a value in the cursor column."""

    pass


class CursorComparisonError(DataIntegrityError):
    """Exception for cursor values that cannot be coerced to the cursor type."""

    pass


class BackoffExhaustedError(SyncError):
    """Exception raised when the retry budget is used up."""

    pass


async def handle_redis_error(
    operation_desc: str, coro: Callable[..., Coroutine[Any, Any, T]], *args, **kwargs
) -> T:
    """
    Helper to execute a Redis coroutine and translate driver errors.

    Args:
        operation_desc: Description of the operation being performed
        coro: The coroutine to execute
        *args: Positional arguments for the coroutine
        **kwargs: Keyword arguments for the coroutine

    Returns:
        The result of the coroutine

    Raises:
        CacheError: If Redis reported an error or the connection failed
    """
    try:
        return await coro(*args, **kwargs)
    except (aioredis.RedisError, OSError) as e:
        logger.error(f"Redis error during '{operation_desc}': {e}")
        raise CacheError(f"Error during '{operation_desc}': {e}") from e


async def handle_postgres_error(
    operation_desc: str, coro: Callable[..., Coroutine[Any, Any, T]], *args, **kwargs
) -> T:
    """
    Helper to execute an asyncpg coroutine and translate driver errors.

    Args:
        operation_desc: Description of the operation being performed
        coro: The coroutine to execute
        *args: Positional arguments for the coroutine
        **kwargs: Keyword arguments for the coroutine

    Returns:
        The result of the coroutine

    Raises:
        SourceError: If PostgreSQL reported an error or the connection failed
    """
    try:
        return await coro(*args, **kwargs)
    except (
        asyncpg.PostgresError,
        asyncpg.InterfaceError,
        OSError,
        asyncio.TimeoutError,
    ) as e:
        logger.error(f"PostgreSQL error during '{operation_desc}': {e}")
        raise SourceError(f"Error during '{operation_desc}': {e}") from e
