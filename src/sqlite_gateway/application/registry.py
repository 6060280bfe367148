"""Connection registry: logical names to open databases.

Lets callers address a connection by name instead of passing the Database
around, and provides the default-name convenience used when no name is
given.
"""

from __future__ import annotations

import threading
from pathlib import Path

from sqlite_gateway.application.database import Database
from sqlite_gateway.domain.errors import ConnectionClosed
from sqlite_gateway.infrastructure.config import Config, get_config
from sqlite_gateway.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ConnectionRegistry:
    """Thread-safe map of logical connection names to open databases."""

    def __init__(self, config: Config | None = None) -> None:
        self._config = config or get_config()
        self._databases: dict[str, Database] = {}
        self._lock = threading.Lock()

    @property
    def default_name(self) -> str:
        return self._config.database.default_name

    def open(
        self,
        name: str | None = None,
        path: str | Path | None = None,
        in_memory: bool | None = None,
    ) -> Database:
        """Open and register a connection.

        Raises:
            ValueError: If a connection with this name is already open.
            EngineError: If the engine cannot open the database.
        """
        name = name or self.default_name
        with self._lock:
            current = self._databases.get(name)
            if current is not None and not current.closed:
                raise ValueError(f"Connection '{name}' is already open")
            return self._open_locked(name, path, in_memory)

    def get_or_open(
        self,
        name: str | None = None,
        path: str | Path | None = None,
        in_memory: bool | None = None,
    ) -> Database:
        """Return the open connection under a name, opening it if needed."""
        name = name or self.default_name
        with self._lock:
            current = self._databases.get(name)
            if current is not None and not current.closed:
                return current
            return self._open_locked(name, path, in_memory)

    def _open_locked(
        self, name: str, path: str | Path | None, in_memory: bool | None
    ) -> Database:
        if path is None and not (in_memory or self._config.database.in_memory):
            self._config.ensure_directories()
        database = Database.open(name, path=path, in_memory=in_memory, config=self._config)
        self._databases[name] = database
        logger.info("connection_registered", connection=name)
        return database

    def get(self, name: str | None = None) -> Database:
        """Return the open connection registered under a name.

        Raises:
            ConnectionClosed: If no open connection has this name.
        """
        name = name or self.default_name
        with self._lock:
            database = self._databases.get(name)
        if database is None or database.closed:
            raise ConnectionClosed(f"No open connection named '{name}'")
        return database

    def close(self, name: str | None = None) -> None:
        """Close and unregister a connection. Unknown names are ignored."""
        name = name or self.default_name
        with self._lock:
            database = self._databases.pop(name, None)
        if database is not None:
            database.close()
            logger.info("connection_unregistered", connection=name)

    def close_all(self) -> None:
        with self._lock:
            databases = list(self._databases.values())
            self._databases.clear()
        for database in databases:
            database.close()

    def names(self) -> list[str]:
        with self._lock:
            return [name for name, db in self._databases.items() if not db.closed]


# Global registry instance
_registry: ConnectionRegistry | None = None
_registry_lock = threading.Lock()


def get_registry() -> ConnectionRegistry:
    """Get the global connection registry."""
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = ConnectionRegistry()
        return _registry


def reset_registry() -> None:
    """Close every registered connection and drop the global registry."""
    global _registry
    with _registry_lock:
        registry, _registry = _registry, None
    if registry is not None:
        registry.close_all()


def open_database(
    name: str | None = None,
    path: str | Path | None = None,
    in_memory: bool | None = None,
) -> Database:
    """Open a named connection in the global registry."""
    return get_registry().open(name, path=path, in_memory=in_memory)


def get_database(name: str | None = None) -> Database:
    """Look up a named connection in the global registry."""
    return get_registry().get(name)


def close_database(name: str | None = None) -> None:
    get_registry().close(name)


def default_database() -> Database:
    """The connection under the default name, opened on first use."""
    return get_registry().get_or_open()
