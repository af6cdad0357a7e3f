#!/usr/bin/env python3
"""
Metrics Module
------------
Metrics collection for PostgreSQL to Redis synchronization.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union


@dataclass
class Metrics:
    """
    Metrics collection for the synchronization process.

    Attributes:
        iterations: Number of sync iterations run
        idle_iterations: Iterations that found no new rows
        rows_processed: Number of rows projected into Redis
        batches_committed: Number of pipelines executed
        errors: Number of failed iterations
        retries: Number of backoff retries scheduled
        last_cursor: Cursor value of the last committed batch
        last_sync_time: Timestamp of the last committed batch
    """

    iterations: int = 0
    idle_iterations: int = 0
    rows_processed: int = 0
    batches_committed: int = 0
    errors: int = 0
    retries: int = 0
    last_cursor: Optional[Union[int, str]] = None
    last_sync_time: Optional[datetime] = None

    def record_commit(self, rows: int, cursor: Union[int, str]) -> None:
        """Record a committed batch."""
        self.rows_processed += rows
        self.batches_committed += 1
        self.last_cursor = cursor
        self.last_sync_time = datetime.now()

    def increment_errors(self, count: int = 1) -> None:
        """Increment error count."""
        self.errors += count

    def increment_retries(self, count: int = 1) -> None:
        """Increment retry count."""
        self.retries += count

    def as_dict(self) -> dict:
        """Return metrics as a dictionary."""
        return {
            "iterations": self.iterations,
            "idle_iterations": self.idle_iterations,
            "rows_processed": self.rows_processed,
            "batches_committed": self.batches_committed,
            "errors": self.errors,
            "retries": self.retries,
            "last_cursor": self.last_cursor,
            "last_sync_time": (
                self.last_sync_time.isoformat() if self.last_sync_time else None
            ),
        }
