#!/usr/bin/env python3
"""
Sync Runner
---------
Runs the PostgreSQL to Redis synchronization loop.

Each iteration reads the cursor from Redis, selects the rows that changed
after it, projects every row into a Redis key/value pair and writes all
pairs plus the new cursor in one MULTI/EXEC transaction. A failed iteration
writes nothing, so the next attempt starts again from the same cursor.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ..services.interfaces import (
    CachePipelineInterface,
    CacheServiceInterface,
    SourceServiceInterface,
)
from ..utils.metrics import Metrics
from .backoff import BackoffPolicy, BackoffState
from .cursor import CursorDescriptor
from .exceptions import (
    BackoffExhaustedError,
    ConfigurationError,
    ConversionError,
    MissingCursorColumnError,
    SyncError,
)
from .templates import compile_key_renderer, compile_value_renderer
from .types import CursorValue, IterationResult, KeyFunc, ValueFunc

if TYPE_CHECKING:
    from ..config.settings import WorkerSettings

logger = logging.getLogger("pg-redis-sync")


@dataclass(frozen=True)
class LoopStep:
    """What the loop does after an iteration."""

    delay: float
    backoff: BackoffState
    recovered: bool = False


def plan_next_step(
    iteration: int,
    error: Optional[Exception],
    backoff: BackoffState,
    policy: BackoffPolicy,
    poll_delay: float,
) -> LoopStep:
    """
    Decide how long to wait before the next iteration.

    Args:
        iteration: Zero-based index of the iteration that just finished
        error: Error raised by that iteration, if any
        backoff: Retry progress before that iteration
        policy: Backoff parameters
        poll_delay: Delay between successful iterations

    Returns:
        The delay and the retry progress to carry into the next iteration

    Raises:
        Exception: The iteration error itself when it happened on the first
            iteration
        BackoffExhaustedError: When the retry budget is used up
    """
    if error is None:
        if backoff.failing:
            return LoopStep(delay=poll_delay, backoff=policy.reset(), recovered=True)
        return LoopStep(delay=poll_delay, backoff=backoff)

    if iteration == 0:
        # Broken startup configuration should fail fast
        raise error

    delay, next_backoff = policy.next_backoff(backoff)
    if delay is None:
        raise BackoffExhaustedError(
            f"backoff stop after {backoff.attempt} retries: {error}"
        ) from error
    return LoopStep(delay=delay, backoff=next_backoff)


class SyncRunner:
    """
    Projects changed PostgreSQL rows into Redis.

    Attributes:
        settings: Validated worker settings
        source: Service used to select changed rows
        cache: Service used to read the cursor and write projections
        metrics: Metrics collection instance
        is_running: Indicates if the loop is running
    """

    def __init__(
        self,
        settings: "WorkerSettings",
        source: SourceServiceInterface,
        cache: CacheServiceInterface,
        metrics: Optional[Metrics] = None,
    ):
        self.settings = settings
        self.source = source
        self.cache = cache
        self.metrics = metrics or Metrics()
        self.is_running = False
        self._stop_event = asyncio.Event()

    async def resolve_cursor(self, descriptor: CursorDescriptor) -> CursorValue:
        """
        Read the persisted cursor, falling back to the configured default.

        Raises:
            ConversionError: If the persisted value is not a valid cursor
            CacheError: If Redis could not be read
        """
        stored = await self.cache.get(self.settings.redis.cursor_key)
        if not stored:
            return descriptor.default

        try:
            return descriptor.convert(stored)
        except ConversionError as e:
            raise ConversionError(
                f"unable to convert redis cursor value {stored!r} to "
                f"{descriptor.cursor_type.value}: {e}"
            ) from e

    async def run_once(
        self, descriptor: CursorDescriptor, key_fn: KeyFunc, value_fn: ValueFunc
    ) -> IterationResult:
        """
        Run a single sync iteration.

        Args:
            descriptor: Cursor type and column
            key_fn: Renders the Redis key of a row
            value_fn: Renders the Redis value of a row

        Returns:
            IterationResult describing what was written

        Raises:
            SyncError: If any step failed; nothing was written in that case
        """
        start_cursor = await self.resolve_cursor(descriptor)
        cursor = start_cursor

        logger.debug(f"Running db query with cursor value {start_cursor!r}")
        rows = await self.source.query(self.settings.db.select_query, start_cursor)

        pipeline = self.cache.pipeline()
        total_rows = 0
        for row in rows:
            next_cursor = row.get(descriptor.column)
            if next_cursor is None:
                raise MissingCursorColumnError(
                    f"cursor column '{descriptor.column}' is null or does not exist"
                )

            # Rows are not guaranteed to come in cursor order
            if descriptor.compare(cursor, next_cursor) < 0:
                cursor = descriptor.coerce(next_cursor)

            key = key_fn(row)
            value = value_fn(row)
            logger.debug(f"Setting key '{key}' to {value!r}")
            pipeline.set(key, value)
            total_rows += 1

        if total_rows == 0:
            self.metrics.idle_iterations += 1
            return IterationResult(
                rows=0, start_cursor=start_cursor, cursor=start_cursor, committed=False
            )

        logger.info(f"Processed {total_rows} rows")
        if total_rows == self.settings.batch_size:
            logger.warning(
                f"Batch size {self.settings.batch_size} reached, "
                "consider reducing the poll delay"
            )

        logger.debug(f"Setting cursor to {cursor!r}")
        pipeline.set(self.settings.redis.cursor_key, descriptor.format(cursor))
        await self._commit(pipeline)
        self.metrics.record_commit(total_rows, cursor)

        return IterationResult(
            rows=total_rows, start_cursor=start_cursor, cursor=cursor, committed=True
        )

    async def _commit(self, pipeline: CachePipelineInterface) -> None:
        """Execute the pipeline; a started commit is never cut short by cancellation."""
        commit = asyncio.ensure_future(pipeline.commit())
        try:
            await asyncio.shield(commit)
        except asyncio.CancelledError:
            await asyncio.wait({commit})
            if not commit.cancelled() and commit.exception() is not None:
                logger.error(f"Pipeline failed while stopping: {commit.exception()}")
            raise

    def _should_stop(self, iteration: int, max_iterations: Optional[int]) -> bool:
        if self._stop_event.is_set():
            return True
        return max_iterations is not None and iteration >= max_iterations

    async def _wait(self, delay: float) -> bool:
        """
        Sleep for ``delay`` seconds or until stop() is called.

        Returns:
            True if the runner was asked to stop
        """
        if delay <= 0:
            await asyncio.sleep(0)
            return self._stop_event.is_set()
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def run(self, max_iterations: Optional[int] = None) -> None:
        """
        Run the sync loop until stopped.

        The loop ends when stop() is called or the task is cancelled, when
        the first iteration fails, when a configuration error occurs, or when
        the backoff gives up after repeated failures.

        Args:
            max_iterations: Stop after this many iterations (unbounded if None)

        Raises:
            ConfigurationError: If the settings or the persisted cursor are invalid
            SyncError: If the first iteration failed, or the last iteration
                allowed by max_iterations failed
            BackoffExhaustedError: If failures kept happening
        """
        descriptor = self.settings.db.cursor.descriptor()
        key_fn = compile_key_renderer(self.settings.redis.key)
        value_fn = compile_value_renderer(self.settings.redis.value)
        policy = self.settings.backoff
        backoff = BackoffState()

        logger.info("Starting PostgreSQL to Redis sync runner")
        self.is_running = True
        iteration = 0
        error: Optional[SyncError] = None

        try:
            while not self._should_stop(iteration, max_iterations):
                error = None
                try:
                    await self.run_once(descriptor, key_fn, value_fn)
                except ConfigurationError:
                    raise
                except SyncError as e:
                    self.metrics.increment_errors()
                    error = e
                finally:
                    self.metrics.iterations += 1

                step = plan_next_step(
                    iteration, error, backoff, policy, self.settings.poll_delay
                )
                if error is not None:
                    self.metrics.increment_retries()
                    logger.warning(
                        f"Error during sync iteration: {error}. "
                        f"Retrying in {step.delay:.2f} seconds..."
                    )
                elif step.recovered:
                    logger.info("Error resolved, polling at regular interval")
                backoff = step.backoff
                iteration += 1

                if self._should_stop(iteration, max_iterations):
                    break
                if await self._wait(step.delay):
                    break

            if error is not None:
                if not self._stop_event.is_set():
                    raise error
                logger.warning(f"Stopped with an unresolved error: {error}")
        except asyncio.CancelledError:
            logger.info("Sync runner task cancelled")
        finally:
            self.is_running = False
            logger.info(f"Final metrics: {self.metrics.as_dict()}")

    def stop(self) -> None:
        """Ask the loop to stop at the next check point."""
        if not self._stop_event.is_set():
            logger.info("Stopping sync runner...")
        self._stop_event.set()
