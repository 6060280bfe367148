"""Value codec: native values to engine literals and bound parameters.

Two paths lead a value into a statement:

    Literal path: the value is rendered as SQL source text and embedded in
    the statement. Text is single-quoted and every embedded quote is
    doubled; this escaping is the only defense against injection on this
    path. render_unsafe() skips the escaping and leaves it to the caller.

    Bound path: the value is passed to the engine's bind primitive as a
    typed value, out of band from the statement text, and is therefore
    immune to quoting injection.

Both paths give the same interpretation to integers outside the signed
64-bit range: the engine reads such a literal as a REAL, so the bound path
converts it to float rather than wrapping or failing.

Rendering table:

    Python value        | Literal
    --------------------|-------------------------
    None                | NULL
    int / bool          | decimal digits
    float               | repr() (round-trips doubles), 9e999 for inf
    str                 | 'text' with ' doubled
    bytes               | X'HEX'
"""

from __future__ import annotations

import math
import re
from typing import Any

from sqlite_gateway.domain.errors import InvalidValueError
from sqlite_gateway.domain.value_objects.values import NULL_KEYWORD, SQLValue, fits_int64

# The engine parses any real literal beyond the double range as infinity
_POS_INF_LITERAL = "9e999"
_NEG_INF_LITERAL = "-9e999"

_INTEGER_RE = re.compile(r"[+-]?\d+")
_HEX_INTEGER_RE = re.compile(r"[+-]?0[xX][0-9a-fA-F]+")
_REAL_RE = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?")
_TEXT_RE = re.compile(r"'(.*)'", re.DOTALL)
_BLOB_RE = re.compile(r"[xX]'([0-9a-fA-F]*)'")

_BLOB_TYPES = (bytes, bytearray, memoryview)


def render(value: Any) -> str:
    """Render a value as an escaped SQL literal.

    Args:
        value: The value to render.

    Returns:
        SQL literal text suitable for embedding in a statement.

    Raises:
        InvalidValueError: If the value has no literal rendering.
    """
    return _render(value, escape=True)


def render_unsafe(value: Any) -> str:
    """Render a value as an SQL literal without escaping quotes in text.

    Note that this opens an injection path if the text contains single
    quotes. Callers must double every ' themselves, or use render().
    """
    return _render(value, escape=False)


def _render(value: Any, escape: bool) -> str:
    if value is None:
        return NULL_KEYWORD

    if isinstance(value, bool):
        return "1" if value else "0"

    if isinstance(value, int):
        return str(int(value))

    if isinstance(value, float):
        if math.isnan(value):
            return NULL_KEYWORD
        if math.isinf(value):
            return _POS_INF_LITERAL if value > 0 else _NEG_INF_LITERAL
        return repr(float(value))

    if isinstance(value, str):
        if "\x00" in value:
            raise InvalidValueError(
                "Text containing NUL cannot be embedded as a literal; bind it instead"
            )
        if escape:
            value = value.replace("'", "''")
        return f"'{value}'"

    if isinstance(value, _BLOB_TYPES):
        return f"X'{bytes(value).hex().upper()}'"

    raise InvalidValueError(
        f"Unsupported value of type {type(value).__name__}: {value!r}"
    )


def to_bindable(value: Any) -> SQLValue:
    """Normalize a value for the engine's bind primitive.

    Args:
        value: The parameter value.

    Returns:
        An int, float, str, bytes or None.

    Raises:
        InvalidValueError: If the value cannot be bound.
    """
    if value is None or isinstance(value, (str, float)):
        return value

    if isinstance(value, bool):
        return int(value)

    if isinstance(value, int):
        if fits_int64(value):
            return int(value)
        try:
            return float(value)
        except OverflowError:
            raise InvalidValueError(f"Integer too large to bind: {value}") from None

    if isinstance(value, _BLOB_TYPES):
        return bytes(value)

    raise InvalidValueError(
        f"Unsupported parameter of type {type(value).__name__}: {value!r}"
    )


def parse_literal(text: str) -> SQLValue:
    """Convert literal SQL text back to a value.

    Inverse of render() for the literal forms it produces, plus TRUE/FALSE
    and hexadecimal integers. Used to read DEFAULT values back from stored
    table definitions.

    Raises:
        InvalidValueError: If the text is not a recognized literal.
    """
    text = text.strip()
    keyword = text.upper()

    if keyword == NULL_KEYWORD:
        return None
    if keyword == "TRUE":
        return 1
    if keyword == "FALSE":
        return 0

    if _INTEGER_RE.fullmatch(text):
        number = int(text)
        return number if fits_int64(number) else float(number)

    if _HEX_INTEGER_RE.fullmatch(text):
        number = int(text, 16)
        if not fits_int64(number):
            raise InvalidValueError(f"Hex literal out of range: {text}")
        return number

    if _REAL_RE.fullmatch(text):
        return float(text)

    match = _TEXT_RE.fullmatch(text)
    if match:
        inner = match.group(1)
        if "'" in inner.replace("''", ""):
            raise InvalidValueError(f"Unbalanced quotes in text literal: {text}")
        return inner.replace("''", "'")

    match = _BLOB_RE.fullmatch(text)
    if match:
        digits = match.group(1)
        if len(digits) % 2:
            raise InvalidValueError(f"Odd number of hex digits in blob literal: {text}")
        return bytes.fromhex(digits)

    raise InvalidValueError(f"Not a literal: {text!r}")
