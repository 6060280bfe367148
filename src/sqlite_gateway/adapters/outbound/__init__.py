"""Outbound adapters - implementations of outbound ports.

These adapters drive the SQL engine: the sqlite3-backed SQLEngine and the
driver that serves the byte-frame engine channel.
"""

from sqlite_gateway.adapters.outbound.frame_driver import EngineDriver
from sqlite_gateway.adapters.outbound.sqlite_engine import (
    SQLiteEngine,
    SQLitePreparedStatement,
    resolve_parameters,
)

__all__ = [
    "EngineDriver",
    "SQLiteEngine",
    "SQLitePreparedStatement",
    "resolve_parameters",
]
