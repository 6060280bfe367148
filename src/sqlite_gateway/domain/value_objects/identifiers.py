"""Type-safe identifiers used across the gateway."""

from __future__ import annotations

from typing import NewType

StatementHandle = NewType("StatementHandle", int)
"""Opaque reference to a prepared statement. Unique per connection, never reused."""

INVALID_HANDLE = StatementHandle(0)
