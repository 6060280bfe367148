"""Database - the caller-facing API of the gateway.

Each Database wraps one serializing coordinator. Methods build a request,
wait for its reply and turn it into a plain result, or raise the mapped
GatewayError subclass.

Usage:
    from sqlite_gateway.application import Database

    with Database.open("inventory", in_memory=True) as db:
        db.create_table("user", [
            ("id", "integer", [PrimaryKey(autoincrement=True)]),
            ("name", "text", ["not_null", "unique"]),
        ])
        rowid = db.write("user", {"name": "abby"})
        result = db.read("user", ("name", "abby"))

        with db.prepare("SELECT * FROM user WHERE name = ?") as statement:
            statement.bind(["abby"])
            rows = list(statement)
"""

from __future__ import annotations

from pathlib import Path
from types import TracebackType
from typing import Any, Callable, Iterable, Iterator, Mapping, Sequence, TypeVar

from sqlite_gateway.adapters.outbound.frame_driver import EngineDriver
from sqlite_gateway.adapters.outbound.sqlite_engine import SQLiteEngine
from sqlite_gateway.application.coordinator import SerializingCoordinator
from sqlite_gateway.domain.entities.replies import (
    AckReply,
    ColumnsReply,
    DefinitionReply,
    DoneReply,
    ErrorReply,
    HandleReply,
    Reply,
    RowIdsReply,
    RowReply,
    RowsReply,
    ScriptReply,
    TablesReply,
)
from sqlite_gateway.domain.entities.requests import (
    BindRequest,
    ColumnsRequest,
    CreateFunctionRequest,
    CreateTableRequest,
    DeleteRequest,
    DropTableRequest,
    ExecuteRequest,
    ExecuteScriptRequest,
    FinalizeRequest,
    ListTablesRequest,
    PrepareRequest,
    ReadRequest,
    Request,
    ResetRequest,
    StepRequest,
    TableInfoRequest,
    UpdateRequest,
    WriteManyRequest,
    WriteRequest,
)
from sqlite_gateway.domain.entities.wire import Parameters
from sqlite_gateway.domain.errors import InvalidValueError, ProtocolError
from sqlite_gateway.domain.services.schema_parser import parse_table_definition
from sqlite_gateway.domain.value_objects import (
    ColumnSpec,
    Predicate,
    ResultSet,
    Row,
    ScriptOutcome,
    SQLValue,
    StatementHandle,
    TableSchema,
)
from sqlite_gateway.infrastructure.config import Config, get_config
from sqlite_gateway.infrastructure.metrics import MetricsRegistry
from sqlite_gateway.ports.inbound.request_coordinator import ConnectionState, RequestCoordinator

R = TypeVar("R", bound=Reply)

PredicateSpec = Predicate | tuple[str, SQLValue]


def _predicate(predicate: PredicateSpec) -> Predicate:
    if isinstance(predicate, Predicate):
        return predicate
    try:
        column, value = predicate
    except (TypeError, ValueError):
        raise InvalidValueError(
            f"Predicate must be a (column, value) pair, got {predicate!r}"
        ) from None
    return Predicate(column, value)


def _result_set(reply: RowsReply | AckReply) -> ResultSet:
    if isinstance(reply, RowsReply):
        return ResultSet(columns=list(reply.columns), rows=list(reply.rows), has_rows=True)
    return ResultSet(rowid=reply.rowid, changes=reply.changes)


class Database:
    """A logical database connection.

    Safe to share between threads: every call is serialized through the
    connection's single worker.

    Attributes:
        name: Logical connection name.
    """

    def __init__(self, coordinator: RequestCoordinator, timeout: float | None = None) -> None:
        """Wrap a started coordinator.

        Args:
            coordinator: The connection's request coordinator.
            timeout: Seconds to wait for each reply (default from config).
        """
        self._coordinator = coordinator
        self._timeout = timeout

    @classmethod
    def open(
        cls,
        name: str | None = None,
        path: str | Path | None = None,
        in_memory: bool | None = None,
        config: Config | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> Database:
        """Open a connection and start its worker.

        Args:
            name: Logical name (default from config).
            path: Database file; overrides the name-derived path.
            in_memory: Open a private in-memory database.
            config: Gateway config (default: global config).
            metrics: Metrics registry (default: global registry).

        Returns:
            The open database.

        Raises:
            EngineError: If the engine cannot open the database.
        """
        config = config or get_config()
        name = name or config.database.default_name
        if path is not None and not in_memory:
            engine_path = str(path)
        else:
            engine_path = config.database.resolve_path(name, in_memory)

        busy_timeout = config.database.busy_timeout_seconds

        def open_channel() -> EngineDriver:
            return EngineDriver(SQLiteEngine(engine_path, busy_timeout), metrics)

        coordinator = SerializingCoordinator(name, open_channel, config.coordinator, metrics)
        coordinator.start()
        return cls(coordinator)

    @property
    def name(self) -> str:
        return self._coordinator.name

    @property
    def closed(self) -> bool:
        return self._coordinator.state is not ConnectionState.OPEN

    def _call(self, request: Request, *expected: type[R]) -> R:
        reply = self._coordinator.call(request, self._timeout)
        if isinstance(reply, ErrorReply):
            raise reply.to_exception()
        if not isinstance(reply, expected):
            raise ProtocolError(
                f"Unexpected {type(reply).__name__} for {request.operation}"
            )
        return reply

    # SQL

    def execute(self, sql: str, params: Parameters = None) -> ResultSet:
        """Execute one SQL statement.

        Args:
            sql: Statement text, with optional ?, ?NNN, :name, @name or
                $name placeholders.
            params: Positional values, or values keyed by 1-based index or
                placeholder name. Unbound placeholders are NULL.

        Returns:
            Columns and rows for queries; rowid and changes otherwise.

        Raises:
            EngineError: With the engine's code and message.
            InvalidValueError: If a parameter cannot be bound.
        """
        return _result_set(self._call(ExecuteRequest(sql, params), RowsReply, AckReply))

    def execute_script(self, script: str) -> list[ScriptOutcome]:
        """Execute statements in order, stopping at the first error.

        Empty and comment-only statements are skipped.

        Returns:
            One outcome per attempted statement: ok, or the error that
            stopped the script.
        """
        return list(self._call(ExecuteScriptRequest(script), ScriptReply).outcomes)

    # Tables

    def create_table(
        self,
        table: str,
        columns: TableSchema | Iterable[ColumnSpec],
        unsafe: bool = False,
    ) -> None:
        try:
            schema = TableSchema.coerce(columns)
        except ValueError as e:
            raise InvalidValueError(str(e)) from e
        self._call(CreateTableRequest(table, schema, unsafe), AckReply)

    def list_tables(self) -> list[str]:
        """Table names in catalog order, engine-internal tables included."""
        return list(self._call(ListTablesRequest(), TablesReply).names)

    def table_info(self, table: str) -> TableSchema | None:
        """Describe a table from its stored definition.

        Returns:
            The table's columns, or None if the table does not exist.

        Raises:
            UnsupportedSchemaError: If the definition uses constructs beyond
                types, primary key, unique, not null and default.
        """
        reply = self._call(TableInfoRequest(table), DefinitionReply)
        if reply.sql is None:
            return None
        return parse_table_definition(reply.sql)

    def drop_table(self, table: str) -> None:
        self._call(DropTableRequest(table), AckReply)

    # Rows

    def write(self, table: str, data: Mapping[str, SQLValue], unsafe: bool = False) -> int:
        """Insert one row and return its rowid."""
        reply = self._call(WriteRequest(table, dict(data), unsafe), AckReply)
        return reply.rowid

    def write_many(
        self,
        table: str,
        rows: Iterable[Mapping[str, SQLValue]],
        unsafe: bool = False,
    ) -> list[int]:
        """Insert rows atomically and return their rowids.

        Either every row is inserted or, on the first failure, none is.
        """
        request = WriteManyRequest(table, tuple(dict(row) for row in rows), unsafe)
        return list(self._call(request, RowIdsReply).rowids)

    def update(
        self,
        table: str,
        predicate: PredicateSpec,
        data: Mapping[str, SQLValue],
        unsafe: bool = False,
    ) -> int:
        """Update rows where column = value; return the number changed."""
        request = UpdateRequest(table, _predicate(predicate), dict(data), unsafe)
        return self._call(request, AckReply).changes

    def read(
        self,
        table: str,
        predicate: PredicateSpec,
        columns: Sequence[str] | None = None,
        unsafe: bool = False,
    ) -> ResultSet:
        """Read rows where column = value.

        A NULL value matches no rows: the predicate is an equality test.
        """
        request = ReadRequest(table, _predicate(predicate), _columns(columns), unsafe)
        return _result_set(self._call(request, RowsReply))

    def read_all(self, table: str, columns: Sequence[str] | None = None) -> ResultSet:
        return _result_set(self._call(ReadRequest(table, None, _columns(columns)), RowsReply))

    def delete(
        self,
        table: str,
        predicate: PredicateSpec,
        unsafe: bool = False,
    ) -> int:
        """Delete rows where column = value; return the number deleted."""
        request = DeleteRequest(table, _predicate(predicate), unsafe)
        return self._call(request, AckReply).changes

    # Prepared statements

    def prepare(self, sql: str) -> PreparedStatement:
        """Compile a statement for repeated stepping.

        Raises:
            EngineError: If the statement does not compile.
        """
        handle = self._call(PrepareRequest(sql), HandleReply).handle
        return PreparedStatement(self, handle, sql)

    def columns(self, handle: StatementHandle) -> list[str]:
        return list(self._call(ColumnsRequest(handle), ColumnsReply).columns)

    def bind(self, handle: StatementHandle, params: Parameters) -> None:
        """Bind values for the next run of a reset statement.

        Raises:
            EngineError: SQLITE_MISUSE if the statement was stepped and not
                reset since.
            InvalidHandleError: If the handle is unknown or finalized.
        """
        self._call(BindRequest(handle, params), AckReply)

    def next(self, handle: StatementHandle) -> Row | None:
        """Step a prepared statement.

        Returns:
            The next row, or None when done. Stepping a done statement
            keeps returning None until it is reset.
        """
        reply = self._call(StepRequest(handle), RowReply, DoneReply)
        if isinstance(reply, DoneReply):
            return None
        return reply.row

    def reset(self, handle: StatementHandle) -> None:
        self._call(ResetRequest(handle), AckReply)

    def finalize(self, handle: StatementHandle) -> None:
        """Release a prepared statement. The handle becomes invalid."""
        self._call(FinalizeRequest(handle), AckReply)

    def create_function(
        self,
        name: str,
        function: Callable[..., Any],
        num_args: int = -1,
    ) -> None:
        """Register a SQL function.

        Raises:
            NotImplementedOperation: Always. Functions cannot cross the
                byte-frame boundary to the engine.
        """
        self._call(CreateFunctionRequest(name, function, num_args), AckReply)

    # Lifecycle

    def close(self) -> None:
        """Close the connection, finalizing every live statement. Idempotent."""
        self._coordinator.close(self._timeout)

    def __enter__(self) -> Database:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Database(name={self.name!r}, state={self._coordinator.state.value})"


def _columns(columns: Sequence[str] | None) -> tuple[str, ...] | None:
    if columns is None:
        return None
    if isinstance(columns, str):
        return (columns,)
    return tuple(columns)


class PreparedStatement:
    """A prepared statement handle bound to its database.

    Iterating steps the statement until done. Used as a context manager,
    the statement is finalized on exit.
    """

    def __init__(self, database: Database, handle: StatementHandle, sql: str) -> None:
        self._database = database
        self.handle = handle
        self.sql = sql
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def columns(self) -> list[str]:
        return self._database.columns(self.handle)

    def bind(self, params: Parameters) -> PreparedStatement:
        self._database.bind(self.handle, params)
        return self

    def next(self) -> Row | None:
        return self._database.next(self.handle)

    def reset(self) -> None:
        self._database.reset(self.handle)

    def finalize(self) -> None:
        if self._finalized:
            return
        self._database.finalize(self.handle)
        self._finalized = True

    def __iter__(self) -> Iterator[Row]:
        return self

    def __next__(self) -> Row:
        row = self.next()
        if row is None:
            raise StopIteration
        return row

    def __enter__(self) -> PreparedStatement:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._database.closed:
            self.finalize()

    def __repr__(self) -> str:
        return f"PreparedStatement(handle={self.handle}, sql={self.sql!r})"
