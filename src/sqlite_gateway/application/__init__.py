"""Application layer for the SQLite gateway.

Exports:
    Database:
        - Database: caller API over one serialized connection
        - PreparedStatement: iterable prepared statement handle
    Coordinator:
        - SerializingCoordinator: single worker thread per connection
    Registry:
        - ConnectionRegistry, open_database, get_database, close_database,
          default_database
"""

from sqlite_gateway.application.coordinator import SerializingCoordinator
from sqlite_gateway.application.database import Database, PreparedStatement
from sqlite_gateway.application.registry import (
    ConnectionRegistry,
    close_database,
    default_database,
    get_database,
    get_registry,
    open_database,
    reset_registry,
)

__all__ = [
    "Database",
    "PreparedStatement",
    "SerializingCoordinator",
    "ConnectionRegistry",
    "get_registry",
    "reset_registry",
    "open_database",
    "get_database",
    "close_database",
    "default_database",
]
