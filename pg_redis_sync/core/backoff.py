#!/usr/bin/env python3
"""
Backoff Module
------------
Exponential backoff used between retries of a failing sync iteration.

The state is a plain immutable value so the loop can pass it around and
tests can check each step without sleeping.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple


@dataclass(frozen=True)
class BackoffState:
    """
    Retry progress.

    Attributes:
        attempt: Number of consecutive failed attempts so far
        current_delay: Delay returned for the last failed attempt
    """

    attempt: int = 0
    current_delay: float = 0.0

    @property
    def failing(self) -> bool:
        return self.attempt > 0


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff parameters.

    Attributes:
        initial_delay: Delay after the first failure, in seconds
        multiplier: Growth factor applied for each further failure
        max_delay: Upper bound for a single delay, in seconds
        max_retries: Consecutive failures allowed before giving up; 0 or less
            means retry forever
    """

    initial_delay: float = 0.5
    multiplier: float = 1.5
    max_delay: float = 60.0
    max_retries: int = 20

    def next_backoff(self, state: BackoffState) -> Tuple[Optional[float], BackoffState]:
        """
        Compute the delay for the next retry.

        Args:
            state: Current retry progress

        Returns:
            Tuple of (delay, new state). The delay is None when the retry
            budget is exhausted.
        """
        if self.max_retries > 0 and state.attempt >= self.max_retries:
            return None, state

        delay = min(
            self.initial_delay * (self.multiplier**state.attempt), self.max_delay
        )
        return delay, replace(state, attempt=state.attempt + 1, current_delay=delay)

    def reset(self) -> BackoffState:
        """Retry progress after a successful attempt."""
        return BackoffState()
