"""Engine replies: what the engine driver sends back for each command.

Reply frames use the same layout as command frames, with a reply kind in
place of the opcode:

    Kind       | Payload
    -----------|---------------------------------------------------
    ROWS       | columns(texts) + row count(4) + row values*
    ACK        | rowid(optional int64) + changes(int64)
    ERROR      | error kind(1) + code(optional int64) + message(text)
    HANDLE     | handle(int64)
    COLUMNS    | columns(texts)
    ROW        | values
    DONE       | (empty)
    SCRIPT     | count(4) + (code(optional int64) + message(text))*
    TABLES     | names(texts)
    DEFINITION | sql(optional text)
    ROW_IDS    | count(4) + rowid(int64)*
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar

from sqlite_gateway.domain.entities.wire import WireReader, WireWriter, pack_frame, unpack_frame
from sqlite_gateway.domain.errors import (
    ConnectionClosed,
    EngineError,
    GatewayError,
    InvalidHandleError,
    InvalidValueError,
    NotImplementedOperation,
    ProtocolError,
    UnsupportedSchemaError,
)
from sqlite_gateway.domain.value_objects.identifiers import StatementHandle
from sqlite_gateway.domain.value_objects.results import ScriptOutcome
from sqlite_gateway.domain.value_objects.values import Row


class ReplyKind(IntEnum):
    """Reply kinds. Single byte on the wire."""

    ROWS = 1
    ACK = 2
    ERROR = 3
    HANDLE = 4
    COLUMNS = 5
    ROW = 6
    DONE = 7
    SCRIPT = 8
    TABLES = 9
    DEFINITION = 10
    ROW_IDS = 11


class ErrorKind(IntEnum):
    """Category of a structured error reply."""

    ENGINE = 1
    INVALID_VALUE = 2
    INVALID_HANDLE = 3
    NOT_IMPLEMENTED = 4
    CONNECTION_CLOSED = 5
    UNSUPPORTED_SCHEMA = 6
    PROTOCOL = 7


@dataclass(frozen=True)
class Reply(ABC):
    """Base class for engine replies."""

    kind: ClassVar[ReplyKind]

    @abstractmethod
    def write_payload(self, writer: WireWriter) -> None:
        ...

    @classmethod
    @abstractmethod
    def read_payload(cls, reader: WireReader) -> Reply:
        ...

    def to_bytes(self) -> bytes:
        writer = WireWriter()
        self.write_payload(writer)
        return pack_frame(self.kind, writer.getvalue())

    @classmethod
    def from_bytes(cls, data: bytes) -> Reply:
        """Decode a reply frame, dispatching on its kind."""
        tag, payload = unpack_frame(data)
        try:
            kind = ReplyKind(tag)
        except ValueError:
            raise ProtocolError(f"Unknown reply kind: {tag}") from None

        reader = WireReader(payload)
        reply = _REPLIES[kind].read_payload(reader)
        if not reader.exhausted:
            raise ProtocolError(f"Trailing bytes after {kind.name} payload")
        return reply


@dataclass(frozen=True)
class RowsReply(Reply):
    """A materialized result set."""

    kind: ClassVar[ReplyKind] = ReplyKind.ROWS

    columns: tuple[str, ...] = ()
    rows: tuple[Row, ...] = ()

    def write_payload(self, writer: WireWriter) -> None:
        writer.texts(self.columns).u32(len(self.rows))
        for row in self.rows:
            writer.values(row)

    @classmethod
    def read_payload(cls, reader: WireReader) -> RowsReply:
        columns = tuple(reader.texts())
        rows = tuple(tuple(reader.values()) for _ in range(reader.u32()))
        return cls(columns=columns, rows=rows)


@dataclass(frozen=True)
class AckReply(Reply):
    """Success without a result set."""

    kind: ClassVar[ReplyKind] = ReplyKind.ACK

    rowid: int | None = None
    changes: int = 0

    def write_payload(self, writer: WireWriter) -> None:
        writer.optional_i64(self.rowid).i64(self.changes)

    @classmethod
    def read_payload(cls, reader: WireReader) -> AckReply:
        rowid = reader.optional_i64()
        return cls(rowid=rowid, changes=reader.i64())


@dataclass(frozen=True)
class ErrorReply(Reply):
    """A structured failure.

    Attributes:
        error: Category of the failure.
        code: Engine result code, for engine errors.
        message: Human-readable detail; the engine's message verbatim for
            engine errors.
    """

    kind: ClassVar[ReplyKind] = ReplyKind.ERROR

    error: ErrorKind
    code: int | None = None
    message: str = ""

    def write_payload(self, writer: WireWriter) -> None:
        writer.u8(self.error).optional_i64(self.code).text(self.message)

    @classmethod
    def read_payload(cls, reader: WireReader) -> ErrorReply:
        raw_kind = reader.u8()
        try:
            error = ErrorKind(raw_kind)
        except ValueError:
            raise ProtocolError(f"Unknown error kind: {raw_kind}") from None
        code = reader.optional_i64()
        return cls(error=error, code=code, message=reader.text())

    @classmethod
    def from_exception(cls, exc: GatewayError) -> ErrorReply:
        """Build the reply describing a gateway exception."""
        if isinstance(exc, EngineError):
            return cls(ErrorKind.ENGINE, exc.code, exc.message)
        for error_kind, exc_type in _EXCEPTIONS.items():
            if isinstance(exc, exc_type):
                return cls(error_kind, None, str(exc))
        raise TypeError(f"No error reply for {type(exc).__name__}")

    def to_exception(self) -> GatewayError:
        """The exception a caller should see for this reply."""
        if self.error == ErrorKind.ENGINE:
            return EngineError.from_code(self.code or 0, self.message)
        return _EXCEPTIONS[self.error](self.message)


_EXCEPTIONS: dict[ErrorKind, type[GatewayError]] = {
    ErrorKind.INVALID_VALUE: InvalidValueError,
    ErrorKind.INVALID_HANDLE: InvalidHandleError,
    ErrorKind.NOT_IMPLEMENTED: NotImplementedOperation,
    ErrorKind.CONNECTION_CLOSED: ConnectionClosed,
    ErrorKind.UNSUPPORTED_SCHEMA: UnsupportedSchemaError,
    ErrorKind.PROTOCOL: ProtocolError,
}


@dataclass(frozen=True)
class HandleReply(Reply):
    kind: ClassVar[ReplyKind] = ReplyKind.HANDLE

    handle: StatementHandle

    def write_payload(self, writer: WireWriter) -> None:
        writer.i64(self.handle)

    @classmethod
    def read_payload(cls, reader: WireReader) -> HandleReply:
        return cls(handle=StatementHandle(reader.i64()))


@dataclass(frozen=True)
class ColumnsReply(Reply):
    kind: ClassVar[ReplyKind] = ReplyKind.COLUMNS

    columns: tuple[str, ...] = ()

    def write_payload(self, writer: WireWriter) -> None:
        writer.texts(self.columns)

    @classmethod
    def read_payload(cls, reader: WireReader) -> ColumnsReply:
        return cls(columns=tuple(reader.texts()))


@dataclass(frozen=True)
class RowReply(Reply):
    """One row produced by stepping a prepared statement."""

    kind: ClassVar[ReplyKind] = ReplyKind.ROW

    row: Row = ()

    def write_payload(self, writer: WireWriter) -> None:
        writer.values(self.row)

    @classmethod
    def read_payload(cls, reader: WireReader) -> RowReply:
        return cls(row=tuple(reader.values()))


@dataclass(frozen=True)
class DoneReply(Reply):
    """The prepared statement has no more rows."""

    kind: ClassVar[ReplyKind] = ReplyKind.DONE

    def write_payload(self, writer: WireWriter) -> None:
        pass

    @classmethod
    def read_payload(cls, reader: WireReader) -> DoneReply:
        return cls()


@dataclass(frozen=True)
class ScriptReply(Reply):
    """Per-statement outcomes of a script, in order."""

    kind: ClassVar[ReplyKind] = ReplyKind.SCRIPT

    outcomes: tuple[ScriptOutcome, ...] = ()

    def write_payload(self, writer: WireWriter) -> None:
        writer.u32(len(self.outcomes))
        for outcome in self.outcomes:
            writer.optional_i64(outcome.code).text(outcome.message)

    @classmethod
    def read_payload(cls, reader: WireReader) -> ScriptReply:
        outcomes = []
        for _ in range(reader.u32()):
            code = reader.optional_i64()
            outcomes.append(ScriptOutcome(code=code, message=reader.text()))
        return cls(outcomes=tuple(outcomes))


@dataclass(frozen=True)
class TablesReply(Reply):
    kind: ClassVar[ReplyKind] = ReplyKind.TABLES

    names: tuple[str, ...] = ()

    def write_payload(self, writer: WireWriter) -> None:
        writer.texts(self.names)

    @classmethod
    def read_payload(cls, reader: WireReader) -> TablesReply:
        return cls(names=tuple(reader.texts()))


@dataclass(frozen=True)
class DefinitionReply(Reply):
    """Stored CREATE TABLE text, or None if the table does not exist."""

    kind: ClassVar[ReplyKind] = ReplyKind.DEFINITION

    sql: str | None = None

    def write_payload(self, writer: WireWriter) -> None:
        writer.optional_text(self.sql)

    @classmethod
    def read_payload(cls, reader: WireReader) -> DefinitionReply:
        return cls(sql=reader.optional_text())


@dataclass(frozen=True)
class RowIdsReply(Reply):
    kind: ClassVar[ReplyKind] = ReplyKind.ROW_IDS

    rowids: tuple[int, ...] = field(default_factory=tuple)

    def write_payload(self, writer: WireWriter) -> None:
        writer.u32(len(self.rowids))
        for rowid in self.rowids:
            writer.i64(rowid)

    @classmethod
    def read_payload(cls, reader: WireReader) -> RowIdsReply:
        return cls(rowids=tuple(reader.i64() for _ in range(reader.u32())))


_REPLIES: dict[ReplyKind, type[Reply]] = {
    ReplyKind.ROWS: RowsReply,
    ReplyKind.ACK: AckReply,
    ReplyKind.ERROR: ErrorReply,
    ReplyKind.HANDLE: HandleReply,
    ReplyKind.COLUMNS: ColumnsReply,
    ReplyKind.ROW: RowReply,
    ReplyKind.DONE: DoneReply,
    ReplyKind.SCRIPT: ScriptReply,
    ReplyKind.TABLES: TablesReply,
    ReplyKind.DEFINITION: DefinitionReply,
    ReplyKind.ROW_IDS: RowIdsReply,
}
