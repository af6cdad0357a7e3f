#!/usr/bin/env python3
"""
Templates Module
--------------
Compiles the Redis key and value templates into row renderers.

A template is literal text with ``${column}`` placeholders, for example
``my-worker:${partition_key}:key``. Each placeholder is replaced by the value
of that column in the row being projected.
"""

import logging
import re
from dataclasses import dataclass
from typing import Tuple

from .exceptions import TemplateError
from .types import KeyFunc, Row, RowValue, ValueFunc

logger = logging.getLogger("pg-redis-sync")

PLACEHOLDER_PATTERN = re.compile(r"\$\{(.+?)\}")


def format_row_value(value: RowValue) -> str:
    """Text used for a column value inside a rendered template."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


@dataclass(frozen=True)
class ProjectionTemplate:
    """
    A compiled template.

    ``literals`` always holds one more item than ``columns``: the text before
    the first placeholder, between each pair and after the last one.
    """

    source: str
    literals: Tuple[str, ...]
    columns: Tuple[str, ...]

    @property
    def is_passthrough(self) -> bool:
        """True when the template is a single placeholder and nothing else."""
        return len(self.columns) == 1 and not any(self.literals)

    def render(self, row: Row) -> str:
        parts = [self.literals[0]]
        for column, literal in zip(self.columns, self.literals[1:]):
            parts.append(format_row_value(row.get(column)))
            parts.append(literal)
        return "".join(parts)


def compile_template(text: str) -> ProjectionTemplate:
    """
    Parse a template string.

    Args:
        text: Template with ``${column}`` placeholders

    Returns:
        The compiled template

    Raises:
        TemplateError: If the template has no placeholders
    """
    matches = list(PLACEHOLDER_PATTERN.finditer(text or ""))
    if not matches:
        raise TemplateError(f"no placeholders found in key/value: {text}")

    literals = []
    columns = []
    index = 0
    for match in matches:
        literals.append(text[index : match.start()])
        columns.append(match.group(1))
        index = match.end()
    literals.append(text[index:])

    return ProjectionTemplate(
        source=text, literals=tuple(literals), columns=tuple(columns)
    )


def compile_key_renderer(text: str) -> KeyFunc:
    """Build the function that renders a Redis key from a row."""
    template = compile_template(text)
    logger.info(
        f"Using redis key template '{template.source}' with columns {list(template.columns)}"
    )
    return template.render


def compile_value_renderer(text: str) -> ValueFunc:
    """
    Build the function that renders a Redis value from a row.

    A template made of a single placeholder returns the column value as is,
    so numbers and booleans keep their type.
    """
    template = compile_template(text)
    logger.info(
        f"Using redis value template '{template.source}' with columns {list(template.columns)}"
    )

    if template.is_passthrough:
        column = template.columns[0]

        def passthrough(row: Row) -> RowValue:
            return row.get(column)

        return passthrough

    return template.render
