"""
Core Package
-----------
Cursor model, projection templates, backoff and exceptions for PostgreSQL to
Redis synchronization.

The sync loop itself lives in ``core.runner``.
"""

from .backoff import BackoffPolicy, BackoffState
from .cursor import CursorDescriptor, CursorType, describe
from .exceptions import (
    BackoffExhaustedError,
    CacheError,
    ConfigurationError,
    ConversionError,
    CursorComparisonError,
    DataIntegrityError,
    MissingCursorColumnError,
    SourceError,
    SyncError,
    TemplateError,
    TransientIOError,
)
from .templates import compile_key_renderer, compile_template, compile_value_renderer

__all__ = [
    "BackoffExhaustedError",
    "BackoffPolicy",
    "BackoffState",
    "CacheError",
    "ConfigurationError",
    "ConversionError",
    "CursorComparisonError",
    "CursorDescriptor",
    "CursorType",
    "DataIntegrityError",
    "MissingCursorColumnError",
    "SourceError",
    "SyncError",
    "TemplateError",
    "TransientIOError",
    "compile_key_renderer",
    "compile_template",
    "compile_value_renderer",
    "describe",
]
