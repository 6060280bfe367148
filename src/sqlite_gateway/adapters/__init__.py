"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Outbound adapters: the sqlite3-backed engine and its frame driver
"""

from sqlite_gateway.adapters.outbound import EngineDriver, SQLiteEngine, SQLitePreparedStatement

__all__ = [
    # Outbound adapters
    "EngineDriver",
    "SQLiteEngine",
    "SQLitePreparedStatement",
]
