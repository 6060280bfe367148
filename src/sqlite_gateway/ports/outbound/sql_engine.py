"""SQL engine port.

This outbound port defines the contract for the embedded relational engine
that executes statements on behalf of a single connection. The gateway
never parses or plans SQL itself; it only hands statement text and bound
values to an implementation of this port.

An engine instance is owned by exactly one thread for its whole life. It
is opened, used and closed on the coordinator's worker thread, so
implementations need no locking of their own.

Failures are raised as EngineError carrying the engine's result code and
message verbatim.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol

from sqlite_gateway.domain.entities.wire import Parameters
from sqlite_gateway.domain.value_objects import ResultSet, Row, ScriptOutcome


class EngineStatement(Protocol):
    """A compiled statement that can be bound, stepped and reset."""

    @abstractmethod
    def columns(self) -> list[str]:
        """Return the result column names, empty for non-queries."""
        ...

    @abstractmethod
    def bind(self, params: Parameters) -> None:
        """Bind parameter values for the next execution.

        Raises:
            EngineError: If the statement is mid-iteration (SQLITE_MISUSE).
            InvalidValueError: If a value cannot be bound.
        """
        ...

    @abstractmethod
    def step(self) -> Row | None:
        """Advance one row.

        Returns:
            The next row, or None once the statement is done. Stepping a
            done statement keeps returning None until reset.
        """
        ...

    @abstractmethod
    def reset(self) -> None:
        """Rewind so the next step restarts execution. Bindings are kept."""
        ...

    @abstractmethod
    def finalize(self) -> None:
        """Release the statement. It must not be used afterwards."""
        ...


class SQLEngine(Protocol):
    """Protocol for an open engine connection."""

    @abstractmethod
    def execute(self, sql: str, params: Parameters = None) -> ResultSet:
        """Execute a single statement and materialize its result.

        Args:
            sql: Statement text.
            params: Positional values or values keyed by index or name.

        Returns:
            Columns and rows for queries; rowid and change count otherwise.

        Raises:
            EngineError: If the engine rejects the statement.
            InvalidValueError: If a parameter cannot be bound.
        """
        ...

    @abstractmethod
    def execute_many(self, statements: list[str]) -> list[int]:
        """Execute statements atomically.

        Returns:
            The last inserted rowid after each statement.

        Raises:
            EngineError: On the first failure; no statement takes effect.
        """
        ...

    @abstractmethod
    def execute_script(self, script: str) -> list[ScriptOutcome]:
        """Execute a multi-statement script, stopping at the first error.

        Returns:
            One outcome per attempted statement, in order.
        """
        ...

    @abstractmethod
    def prepare(self, sql: str) -> EngineStatement:
        """Compile a statement.

        Raises:
            EngineError: If the statement does not compile.
        """
        ...

    @abstractmethod
    def list_tables(self) -> list[str]:
        """Return table names in catalog order."""
        ...

    @abstractmethod
    def table_definition(self, table: str) -> str | None:
        """Return the stored CREATE TABLE text, or None if absent."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the connection. Idempotent."""
        ...
