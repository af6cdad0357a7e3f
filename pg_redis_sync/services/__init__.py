"""
Services Package
--------------
Contains service classes for PostgreSQL and Redis operations.
"""

from .interfaces import (
    CachePipelineInterface,
    CacheServiceInterface,
    SourceServiceInterface,
)
from .postgres_service import PostgresService
from .redis_service import RedisPipeline, RedisService

__all__ = [
    "CachePipelineInterface",
    "CacheServiceInterface",
    "PostgresService",
    "RedisPipeline",
    "RedisService",
    "SourceServiceInterface",
]
