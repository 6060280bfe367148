"""Caller-level requests accepted by the serializing coordinator.

One request type per operation. A request is owned by the coordinator
queue from submission until its reply is produced, and receives exactly
one reply.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Mapping, Sequence

from sqlite_gateway.domain.entities.wire import Parameters
from sqlite_gateway.domain.value_objects.identifiers import StatementHandle
from sqlite_gateway.domain.value_objects.schema import TableSchema
from sqlite_gateway.domain.value_objects.values import Predicate, SQLValue


@dataclass(frozen=True)
class Request:
    """Base class for coordinator requests."""

    operation: ClassVar[str] = "request"


@dataclass(frozen=True)
class ExecuteRequest(Request):
    """Run one SQL statement, with optional bound parameters."""

    operation: ClassVar[str] = "execute"

    sql: str
    params: Parameters = None


@dataclass(frozen=True)
class ExecuteScriptRequest(Request):
    operation: ClassVar[str] = "execute_script"

    script: str


@dataclass(frozen=True)
class CreateTableRequest(Request):
    operation: ClassVar[str] = "create_table"

    table: str
    schema: TableSchema
    unsafe: bool = False


@dataclass(frozen=True)
class ListTablesRequest(Request):
    operation: ClassVar[str] = "list_tables"


@dataclass(frozen=True)
class TableInfoRequest(Request):
    operation: ClassVar[str] = "table_info"

    table: str


@dataclass(frozen=True)
class WriteRequest(Request):
    """Insert one row given as column -> value pairs."""

    operation: ClassVar[str] = "write"

    table: str
    data: Mapping[str, SQLValue]
    unsafe: bool = False


@dataclass(frozen=True)
class WriteManyRequest(Request):
    """Insert several rows atomically."""

    operation: ClassVar[str] = "write_many"

    table: str
    rows: Sequence[Mapping[str, SQLValue]] = field(default_factory=tuple)
    unsafe: bool = False


@dataclass(frozen=True)
class UpdateRequest(Request):
    operation: ClassVar[str] = "update"

    table: str
    predicate: Predicate
    data: Mapping[str, SQLValue]
    unsafe: bool = False


@dataclass(frozen=True)
class ReadRequest(Request):
    """Select rows matching a predicate; no predicate reads every row."""

    operation: ClassVar[str] = "read"

    table: str
    predicate: Predicate | None = None
    columns: Sequence[str] | None = None
    unsafe: bool = False


@dataclass(frozen=True)
class DeleteRequest(Request):
    operation: ClassVar[str] = "delete"

    table: str
    predicate: Predicate
    unsafe: bool = False


@dataclass(frozen=True)
class DropTableRequest(Request):
    operation: ClassVar[str] = "drop_table"

    table: str


@dataclass(frozen=True)
class PrepareRequest(Request):
    operation: ClassVar[str] = "prepare"

    sql: str


@dataclass(frozen=True)
class HandleRequest(Request):
    """Base for requests addressed to a prepared statement."""

    handle: StatementHandle


@dataclass(frozen=True)
class ColumnsRequest(HandleRequest):
    operation: ClassVar[str] = "columns"


@dataclass(frozen=True)
class BindRequest(HandleRequest):
    operation: ClassVar[str] = "bind"

    params: Parameters = None


@dataclass(frozen=True)
class StepRequest(HandleRequest):
    operation: ClassVar[str] = "next"


@dataclass(frozen=True)
class ResetRequest(HandleRequest):
    operation: ClassVar[str] = "reset"


@dataclass(frozen=True)
class FinalizeRequest(HandleRequest):
    operation: ClassVar[str] = "finalize"


@dataclass(frozen=True)
class CreateFunctionRequest(Request):
    operation: ClassVar[str] = "create_function"

    name: str
    function: Callable[..., Any] | None = None
    num_args: int = -1


@dataclass(frozen=True)
class CloseRequest(Request):
    operation: ClassVar[str] = "close"
