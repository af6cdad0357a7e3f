#!/usr/bin/env python3
"""Common test fixtures for PostgreSQL to Redis sync tests."""

from typing import Any, Dict, List, Optional

import pytest

from pg_redis_sync.config.settings import (
    DBSettings,
    RedisSettings,
    WorkerSettings,
    validate_settings,
)
from pg_redis_sync.core.backoff import BackoffPolicy
from pg_redis_sync.core.exceptions import CacheError, SourceError
from pg_redis_sync.services.interfaces import (
    CachePipelineInterface,
    CacheServiceInterface,
    SourceServiceInterface,
)


class FakePipeline(CachePipelineInterface):
    """Pipeline that applies its writes to a FakeCache on commit."""

    def __init__(self, cache: "FakeCache"):
        self.cache = cache
        self.commands: List[tuple] = []

    def set(self, key: str, value: Any) -> None:
        self.commands.append((key, value))

    def __len__(self) -> int:
        return len(self.commands)

    async def commit(self) -> None:
        self.cache.commits += 1
        error = self.cache.commit_errors.pop(0) if self.cache.commit_errors else None
        if error is not None:
            raise error
        for key, value in self.commands:
            self.cache.store[key] = value
            if key == self.cache.cursor_key:
                self.cache.cursor_history.append(value)
        self.commands.clear()


class FakeCache(CacheServiceInterface):
    """In-memory cache with all-or-nothing pipelines."""

    def __init__(self, cursor_key: str = "my-worker:latest"):
        self.store: Dict[str, Any] = {}
        self.cursor_key = cursor_key
        self.cursor_history: List[Any] = []
        self.commits = 0
        self.commit_errors: List[Optional[Exception]] = []
        self.get_errors: List[Exception] = []
        self.pipelines: List[FakePipeline] = []

    async def connect(self) -> bool:
        return True

    async def get(self, key: str) -> Optional[str]:
        if self.get_errors:
            raise self.get_errors.pop(0)
        value = self.store.get(key)
        return None if value is None else str(value)

    def pipeline(self) -> FakePipeline:
        pipeline = FakePipeline(self)
        self.pipelines.append(pipeline)
        return pipeline

    async def close(self) -> None:
        pass


class FakeSource(SourceServiceInterface):
    """
    Source backed by a list of rows.

    Like the real select query, it only returns rows whose cursor column is
    greater than the bound cursor value.
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, column: str = "id"):
        self.rows = list(rows or [])
        self.column = column
        self.queries: List[tuple] = []
        # raised by successive queries, None lets a query through
        self.errors: List[Optional[Exception]] = []

    async def connect(self) -> bool:
        return True

    async def query(self, query_text: str, cursor_value: Any) -> List[Dict[str, Any]]:
        self.queries.append((query_text, cursor_value))
        error = self.errors.pop(0) if self.errors else None
        if error is not None:
            raise error
        return [
            dict(row)
            for row in self.rows
            if row.get(self.column) is None or row[self.column] > cursor_value
        ]

    async def close(self) -> None:
        pass


@pytest.fixture
def settings() -> WorkerSettings:
    """Validated settings with no delays."""
    return validate_settings(
        WorkerSettings(
            db=DBSettings(),
            redis=RedisSettings(
                key="worker:${partition}:key",
                value="${id}",
                cursor_key="my-worker:latest",
            ),
            poll_delay=0,
            batch_size=200,
            backoff=BackoffPolicy(
                initial_delay=0, multiplier=2.0, max_delay=0, max_retries=3
            ),
        )
    )


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource(
        [
            {"id": 2, "partition": 1000},
            {"id": 3, "partition": 2000},
        ]
    )


@pytest.fixture
def source_error() -> SourceError:
    return SourceError("connection refused")


@pytest.fixture
def cache_error() -> CacheError:
    return CacheError("pipeline failed")


@pytest.fixture
def make_source():
    """Factory for sources with custom rows."""
    return FakeSource
