#!/usr/bin/env python3
"""
Cursor Module
-----------
Type, ordering and conversion rules for the sync cursor.

The cursor is the value of a monotonic column in the select query results.
Its declared type decides how persisted text is parsed and how two values
are ordered: integer cursors compare numerically, string and uuid cursors
compare by code point, which is the same order as their UTF-8 bytes.
Textual cursors are persisted exactly as the source returned them.
"""

import re
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from .exceptions import ConfigurationError, ConversionError, CursorComparisonError
from .types import CursorValue

INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1

INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


class CursorType(str, Enum):
    """Supported cursor column types."""

    INT64 = "int64"
    INT32 = "int32"
    INT = "int"
    STRING = "string"
    UUID = "uuid"

    @property
    def is_integer(self) -> bool:
        return self in (CursorType.INT64, CursorType.INT32, CursorType.INT)


def _int_bounds(cursor_type: CursorType) -> Tuple[Optional[int], Optional[int]]:
    if cursor_type is CursorType.INT64:
        return INT64_MIN, INT64_MAX
    if cursor_type is CursorType.INT32:
        return INT32_MIN, INT32_MAX
    return None, None


def _convert_int(cursor_type: CursorType, text: str) -> int:
    if not isinstance(text, str) or not INTEGER_PATTERN.fullmatch(text):
        raise ConversionError(f"Unable to parse {text!r} as {cursor_type.value}")
    value = int(text)

    low, high = _int_bounds(cursor_type)
    if low is not None and not low <= value <= high:
        raise ConversionError(f"Value {value} out of range for {cursor_type.value}")
    return value


def _convert_uuid(text: str) -> str:
    # Validated but kept verbatim so a persisted cursor reads back unchanged
    try:
        uuid.UUID(text)
    except (AttributeError, TypeError, ValueError) as e:
        raise ConversionError(f"Unable to parse {text!r} as uuid") from e
    return text


def _convert_string(text: str) -> str:
    if not isinstance(text, str):
        raise ConversionError(f"Unable to use {text!r} as string")
    return text


@dataclass(frozen=True)
class CursorDescriptor:
    """
    Static description of the cursor column.

    Attributes:
        column: Name of the cursor column in query results
        cursor_type: Declared type of the cursor column
        default: Starting value when nothing has been persisted yet
    """

    column: str
    cursor_type: CursorType
    default: CursorValue

    def convert(self, text: str) -> CursorValue:
        """
        Parse a textual cursor, e.g. the value persisted in Redis.

        Raises:
            ConversionError: If the text is not a valid value of the cursor type
        """
        if self.cursor_type.is_integer:
            return _convert_int(self.cursor_type, text)
        if self.cursor_type is CursorType.UUID:
            return _convert_uuid(text)
        return _convert_string(text)

    def coerce(self, value: Any) -> CursorValue:
        """
        Check that a value read from a row has the cursor type.

        UUID objects (as returned by asyncpg for uuid columns) are accepted
        for uuid cursors and turned into their canonical text form.

        Raises:
            CursorComparisonError: If the value has an unexpected native type
        """
        if self.cursor_type.is_integer:
            if isinstance(value, int) and not isinstance(value, bool):
                return value
        elif self.cursor_type is CursorType.UUID:
            if isinstance(value, uuid.UUID):
                return str(value)
            if isinstance(value, str):
                return value
        elif isinstance(value, str):
            return value

        raise CursorComparisonError(
            f"Unable to use {value!r} ({type(value).__name__}) as "
            f"{self.cursor_type.value} cursor"
        )

    def compare(self, a: Any, b: Any) -> int:
        """
        Compare two cursor values.

        Returns:
            -1 if a sorts before b, 0 if they are equal, 1 otherwise

        Raises:
            CursorComparisonError: If either operand has an unexpected type
        """
        left = self.coerce(a)
        right = self.coerce(b)
        return (left > right) - (left < right)

    def format(self, value: CursorValue) -> str:
        """Text form stored in Redis."""
        return str(self.coerce(value))


def describe(
    type_name: str, default_literal: str, column: str = "id"
) -> CursorDescriptor:
    """
    Build the cursor descriptor for a declared type.

    Args:
        type_name: One of int64, int32, int, string, uuid
        default_literal: Default cursor value as text
        column: Cursor column name in the query results

    Returns:
        CursorDescriptor with the default already parsed

    Raises:
        ConfigurationError: If the type is not supported
        ConversionError: If the default cannot be parsed into the type
    """
    try:
        cursor_type = CursorType(type_name)
    except ValueError as e:
        raise ConfigurationError(f"unsupported cursor type: {type_name}") from e

    descriptor = CursorDescriptor(column=column, cursor_type=cursor_type, default=0)
    try:
        default = descriptor.convert(default_literal)
    except ConversionError as e:
        raise ConversionError(f"Unable to convert default value: {e}") from e

    return CursorDescriptor(column=column, cursor_type=cursor_type, default=default)
