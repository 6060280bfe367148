"""Engine driver: the engine side of the byte-frame channel.

Decodes one command frame, runs it against an SQLEngine and encodes one
reply frame. The driver owns the compiled statements behind each handle;
handles are allocated from a per-driver counter and never reused.

Every failure becomes an error reply. Frames that cannot be decoded are
answered with a PROTOCOL error reply and logged.

Thread Safety:
    None. The driver runs on the coordinator's worker thread, the same
    thread that opened its engine.
"""

from __future__ import annotations

from typing import Callable

from sqlite_gateway.domain.entities.commands import (
    BindCommand,
    CloseCommand,
    ColumnsCommand,
    Command,
    CreateFunctionCommand,
    ExecuteCommand,
    ExecuteManyCommand,
    ExecuteScriptCommand,
    FinalizeCommand,
    HandleCommand,
    ListTablesCommand,
    PrepareCommand,
    ResetCommand,
    StepCommand,
    TableDefinitionCommand,
)
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
from sqlite_gateway.domain.errors import (
    GatewayError,
    InvalidHandleError,
    NotImplementedOperation,
    ProtocolError,
)
from sqlite_gateway.domain.value_objects.identifiers import StatementHandle
from sqlite_gateway.infrastructure.logging import get_logger
from sqlite_gateway.infrastructure.metrics import MetricsRegistry, get_metrics
from sqlite_gateway.ports.outbound.sql_engine import EngineStatement, SQLEngine


class EngineDriver:
    """Implements the EngineChannel protocol over an SQLEngine."""

    def __init__(self, engine: SQLEngine, metrics: MetricsRegistry | None = None) -> None:
        self._engine = engine
        self._metrics = metrics or get_metrics()
        self._statements: dict[StatementHandle, EngineStatement] = {}
        self._next_handle = 1
        self._logger = get_logger(__name__)

        self._handlers: dict[type[Command], Callable[[Command], Reply]] = {
            ExecuteCommand: self._execute,
            ExecuteScriptCommand: self._execute_script,
            ExecuteManyCommand: self._execute_many,
            CreateFunctionCommand: self._create_function,
            PrepareCommand: self._prepare,
            ColumnsCommand: self._columns,
            BindCommand: self._bind,
            StepCommand: self._step,
            ResetCommand: self._reset,
            FinalizeCommand: self._finalize,
            ListTablesCommand: self._list_tables,
            TableDefinitionCommand: self._table_definition,
            CloseCommand: self._close,
        }

    @property
    def live_handles(self) -> frozenset[StatementHandle]:
        return frozenset(self._statements)

    def transact(self, frame: bytes) -> bytes:
        """Run one command frame and return its reply frame."""
        try:
            command = Command.from_bytes(frame)
        except ProtocolError as e:
            self._metrics.frames_rejected_total.inc()
            self._logger.warning("frame_rejected", size=len(frame), error=str(e))
            return ErrorReply.from_exception(e).to_bytes()

        return self.dispatch(command).to_bytes()

    def dispatch(self, command: Command) -> Reply:
        """Run a decoded command against the engine."""
        try:
            return self._handlers[type(command)](command)
        except GatewayError as e:
            return ErrorReply.from_exception(e)

    def _statement(self, command: HandleCommand) -> EngineStatement:
        try:
            return self._statements[command.handle]
        except KeyError:
            raise InvalidHandleError(f"Unknown statement handle: {command.handle}") from None

    def _execute(self, command: ExecuteCommand) -> Reply:
        result = self._engine.execute(command.sql, command.params)
        if result.has_rows:
            return RowsReply(columns=tuple(result.columns), rows=tuple(result.rows))
        return AckReply(rowid=result.rowid, changes=result.changes)

    def _execute_script(self, command: ExecuteScriptCommand) -> Reply:
        return ScriptReply(outcomes=tuple(self._engine.execute_script(command.script)))

    def _execute_many(self, command: ExecuteManyCommand) -> Reply:
        return RowIdsReply(rowids=tuple(self._engine.execute_many(list(command.statements))))

    def _create_function(self, command: CreateFunctionCommand) -> Reply:
        raise NotImplementedOperation(
            f"create_function({command.name!r}) is not supported: "
            "functions cannot cross the engine channel"
        )

    def _prepare(self, command: PrepareCommand) -> Reply:
        statement = self._engine.prepare(command.sql)
        handle = StatementHandle(self._next_handle)
        self._next_handle += 1
        self._statements[handle] = statement
        return HandleReply(handle=handle)

    def _columns(self, command: ColumnsCommand) -> Reply:
        return ColumnsReply(columns=tuple(self._statement(command).columns()))

    def _bind(self, command: BindCommand) -> Reply:
        self._statement(command).bind(command.params)
        return AckReply()

    def _step(self, command: StepCommand) -> Reply:
        row = self._statement(command).step()
        if row is None:
            return DoneReply()
        return RowReply(row=row)

    def _reset(self, command: ResetCommand) -> Reply:
        self._statement(command).reset()
        return AckReply()

    def _finalize(self, command: FinalizeCommand) -> Reply:
        statement = self._statement(command)
        del self._statements[command.handle]
        statement.finalize()
        return AckReply()

    def _list_tables(self, command: ListTablesCommand) -> Reply:
        return TablesReply(names=tuple(self._engine.list_tables()))

    def _table_definition(self, command: TableDefinitionCommand) -> Reply:
        return DefinitionReply(sql=self._engine.table_definition(command.table))

    def _close(self, command: CloseCommand) -> Reply:
        statements = list(self._statements.values())
        self._statements.clear()
        for statement in statements:
            statement.finalize()
        self._engine.close()
        self._logger.debug("engine_closed", finalized=len(statements))
        return AckReply()
