"""Engine commands: what the coordinating worker sends to the engine driver.

Each command is encoded as a frame: opcode(1) + payload length(4) +
payload. The payload layout is specific to the opcode:

    Opcode           | Payload
    -----------------|-----------------------------------------
    EXECUTE          | sql(text) + params
    EXECUTE_SCRIPT   | script(text)
    EXECUTE_MANY     | count(4) + sql(text)*
    CREATE_FUNCTION  | name(text) + num_args(int64)
    PREPARE          | sql(text)
    COLUMNS          | handle(int64)
    BIND             | handle(int64) + params
    STEP             | handle(int64)
    RESET            | handle(int64)
    FINALIZE         | handle(int64)
    LIST_TABLES      | (empty)
    TABLE_DEFINITION | table(text)
    CLOSE            | (empty)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar

from sqlite_gateway.domain.entities.wire import (
    Parameters,
    WireReader,
    WireWriter,
    pack_frame,
    unpack_frame,
)
from sqlite_gateway.domain.errors import ProtocolError
from sqlite_gateway.domain.value_objects.identifiers import StatementHandle


class Opcode(IntEnum):
    """Command opcodes. Single byte on the wire."""

    EXECUTE = 1
    EXECUTE_SCRIPT = 2
    EXECUTE_MANY = 3
    CREATE_FUNCTION = 4
    PREPARE = 5
    COLUMNS = 6
    BIND = 7
    STEP = 8
    RESET = 9
    FINALIZE = 10
    LIST_TABLES = 11
    TABLE_DEFINITION = 12
    CLOSE = 13


@dataclass(frozen=True)
class Command(ABC):
    """Base class for engine commands."""

    opcode: ClassVar[Opcode]

    @abstractmethod
    def write_payload(self, writer: WireWriter) -> None:
        """Encode the command-specific payload."""
        ...

    @classmethod
    @abstractmethod
    def read_payload(cls, reader: WireReader) -> Command:
        """Decode the command-specific payload."""
        ...

    def to_bytes(self) -> bytes:
        writer = WireWriter()
        self.write_payload(writer)
        return pack_frame(self.opcode, writer.getvalue())

    @classmethod
    def from_bytes(cls, data: bytes) -> Command:
        """Decode a command frame, dispatching on its opcode."""
        tag, payload = unpack_frame(data)
        try:
            opcode = Opcode(tag)
        except ValueError:
            raise ProtocolError(f"Unknown opcode: {tag}") from None

        reader = WireReader(payload)
        command = _COMMANDS[opcode].read_payload(reader)
        if not reader.exhausted:
            raise ProtocolError(f"Trailing bytes after {opcode.name} payload")
        return command


@dataclass(frozen=True)
class ExecuteCommand(Command):
    """Execute one statement, optionally with bound parameters."""

    opcode: ClassVar[Opcode] = Opcode.EXECUTE

    sql: str
    params: Parameters = None

    def write_payload(self, writer: WireWriter) -> None:
        writer.text(self.sql).params(self.params)

    @classmethod
    def read_payload(cls, reader: WireReader) -> ExecuteCommand:
        sql = reader.text()
        return cls(sql=sql, params=reader.params())


@dataclass(frozen=True)
class ExecuteScriptCommand(Command):
    """Execute a multi-statement script, stopping at the first error."""

    opcode: ClassVar[Opcode] = Opcode.EXECUTE_SCRIPT

    script: str

    def write_payload(self, writer: WireWriter) -> None:
        writer.text(self.script)

    @classmethod
    def read_payload(cls, reader: WireReader) -> ExecuteScriptCommand:
        return cls(script=reader.text())


@dataclass(frozen=True)
class ExecuteManyCommand(Command):
    """Execute several statements atomically; all succeed or none apply."""

    opcode: ClassVar[Opcode] = Opcode.EXECUTE_MANY

    statements: tuple[str, ...] = field(default_factory=tuple)

    def write_payload(self, writer: WireWriter) -> None:
        writer.texts(self.statements)

    @classmethod
    def read_payload(cls, reader: WireReader) -> ExecuteManyCommand:
        return cls(statements=tuple(reader.texts()))


@dataclass(frozen=True)
class CreateFunctionCommand(Command):
    """Register a SQL function. Only the name and arity cross the wire."""

    opcode: ClassVar[Opcode] = Opcode.CREATE_FUNCTION

    name: str
    num_args: int = -1

    def write_payload(self, writer: WireWriter) -> None:
        writer.text(self.name).i64(self.num_args)

    @classmethod
    def read_payload(cls, reader: WireReader) -> CreateFunctionCommand:
        name = reader.text()
        return cls(name=name, num_args=reader.i64())


@dataclass(frozen=True)
class PrepareCommand(Command):
    """Compile a statement into a reusable handle."""

    opcode: ClassVar[Opcode] = Opcode.PREPARE

    sql: str

    def write_payload(self, writer: WireWriter) -> None:
        writer.text(self.sql)

    @classmethod
    def read_payload(cls, reader: WireReader) -> PrepareCommand:
        return cls(sql=reader.text())


@dataclass(frozen=True)
class HandleCommand(Command):
    """Base for commands addressed to a prepared statement handle."""

    handle: StatementHandle

    def write_payload(self, writer: WireWriter) -> None:
        writer.i64(self.handle)

    @classmethod
    def read_payload(cls, reader: WireReader) -> HandleCommand:
        return cls(handle=StatementHandle(reader.i64()))


@dataclass(frozen=True)
class ColumnsCommand(HandleCommand):
    opcode: ClassVar[Opcode] = Opcode.COLUMNS


@dataclass(frozen=True)
class StepCommand(HandleCommand):
    opcode: ClassVar[Opcode] = Opcode.STEP


@dataclass(frozen=True)
class ResetCommand(HandleCommand):
    opcode: ClassVar[Opcode] = Opcode.RESET


@dataclass(frozen=True)
class FinalizeCommand(HandleCommand):
    opcode: ClassVar[Opcode] = Opcode.FINALIZE


@dataclass(frozen=True)
class BindCommand(Command):
    """Bind parameter values to a prepared statement."""

    opcode: ClassVar[Opcode] = Opcode.BIND

    handle: StatementHandle
    params: Parameters = None

    def write_payload(self, writer: WireWriter) -> None:
        writer.i64(self.handle).params(self.params)

    @classmethod
    def read_payload(cls, reader: WireReader) -> BindCommand:
        handle = StatementHandle(reader.i64())
        return cls(handle=handle, params=reader.params())


@dataclass(frozen=True)
class ListTablesCommand(Command):
    opcode: ClassVar[Opcode] = Opcode.LIST_TABLES

    def write_payload(self, writer: WireWriter) -> None:
        pass

    @classmethod
    def read_payload(cls, reader: WireReader) -> ListTablesCommand:
        return cls()


@dataclass(frozen=True)
class TableDefinitionCommand(Command):
    """Fetch a table's stored CREATE TABLE text from the catalog."""

    opcode: ClassVar[Opcode] = Opcode.TABLE_DEFINITION

    table: str

    def write_payload(self, writer: WireWriter) -> None:
        writer.text(self.table)

    @classmethod
    def read_payload(cls, reader: WireReader) -> TableDefinitionCommand:
        return cls(table=reader.text())


@dataclass(frozen=True)
class CloseCommand(Command):
    opcode: ClassVar[Opcode] = Opcode.CLOSE

    def write_payload(self, writer: WireWriter) -> None:
        pass

    @classmethod
    def read_payload(cls, reader: WireReader) -> CloseCommand:
        return cls()


_COMMANDS: dict[Opcode, type[Command]] = {
    Opcode.EXECUTE: ExecuteCommand,
    Opcode.EXECUTE_SCRIPT: ExecuteScriptCommand,
    Opcode.EXECUTE_MANY: ExecuteManyCommand,
    Opcode.CREATE_FUNCTION: CreateFunctionCommand,
    Opcode.PREPARE: PrepareCommand,
    Opcode.COLUMNS: ColumnsCommand,
    Opcode.BIND: BindCommand,
    Opcode.STEP: StepCommand,
    Opcode.RESET: ResetCommand,
    Opcode.FINALIZE: FinalizeCommand,
    Opcode.LIST_TABLES: ListTablesCommand,
    Opcode.TABLE_DEFINITION: TableDefinitionCommand,
    Opcode.CLOSE: CloseCommand,
}
