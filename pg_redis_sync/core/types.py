"""
Core type definitions for PostgreSQL to Redis synchronization.

This module defines the core types used by the PostgreSQL to
Redis synchronization service.
"""

import datetime
import decimal
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Union

# Row types
RowValue = Union[
    int,
    float,
    decimal.Decimal,
    str,
    bool,
    bytes,
    uuid.UUID,
    datetime.datetime,
    datetime.date,
    None,
]
Row = Dict[str, RowValue]  # column name -> value, one per fetched record
RowList = List[Row]

# Cursor types
CursorValue = Union[int, str]  # int for integer cursors, str for string/uuid

# Projection callables
KeyFunc = Callable[[Row], str]
ValueFunc = Callable[[Row], RowValue]

# Redis-specific types
RedisKey = str
RedisValue = Union[str, bytes, int, float]


@dataclass
class IterationResult:
    """Outcome of a single sync iteration."""

    rows: int
    start_cursor: CursorValue
    cursor: CursorValue
    committed: bool

