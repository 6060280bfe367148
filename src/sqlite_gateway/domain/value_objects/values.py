"""The native value model exchanged with the engine.

A value is one of int (64-bit signed), float, str (text), bytes (blob) or
None (null). Booleans are accepted on input and stored as integers.
"""

from __future__ import annotations

from typing import NamedTuple, Union

SQLValue = Union[int, float, str, bytes, None]
"""A single engine value."""

Row = tuple
"""A result row: a tuple of SQLValue in column order."""

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

NULL_KEYWORD = "NULL"


def fits_int64(value: int) -> bool:
    """Check whether an integer fits the engine's signed 64-bit storage."""
    return INT64_MIN <= value <= INT64_MAX


class Predicate(NamedTuple):
    """Single-column equality condition used to target rows."""

    column: str
    value: SQLValue
