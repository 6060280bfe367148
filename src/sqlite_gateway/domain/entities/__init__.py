"""Domain entities: requests, engine commands and replies, and their wire format."""

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
    Opcode,
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
    ErrorKind,
    ErrorReply,
    HandleReply,
    Reply,
    ReplyKind,
    RowIdsReply,
    RowReply,
    RowsReply,
    ScriptReply,
    TablesReply,
)
from sqlite_gateway.domain.entities.requests import (
    BindRequest,
    CloseRequest,
    ColumnsRequest,
    CreateFunctionRequest,
    CreateTableRequest,
    DeleteRequest,
    DropTableRequest,
    ExecuteRequest,
    ExecuteScriptRequest,
    FinalizeRequest,
    HandleRequest,
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

__all__ = [
    # Commands
    "Command",
    "Opcode",
    "ExecuteCommand",
    "ExecuteScriptCommand",
    "ExecuteManyCommand",
    "CreateFunctionCommand",
    "PrepareCommand",
    "HandleCommand",
    "ColumnsCommand",
    "BindCommand",
    "StepCommand",
    "ResetCommand",
    "FinalizeCommand",
    "ListTablesCommand",
    "TableDefinitionCommand",
    "CloseCommand",
    # Replies
    "Reply",
    "ReplyKind",
    "ErrorKind",
    "RowsReply",
    "AckReply",
    "ErrorReply",
    "HandleReply",
    "ColumnsReply",
    "RowReply",
    "DoneReply",
    "ScriptReply",
    "TablesReply",
    "DefinitionReply",
    "RowIdsReply",
    # Requests
    "Request",
    "ExecuteRequest",
    "ExecuteScriptRequest",
    "CreateTableRequest",
    "ListTablesRequest",
    "TableInfoRequest",
    "WriteRequest",
    "WriteManyRequest",
    "UpdateRequest",
    "ReadRequest",
    "DeleteRequest",
    "DropTableRequest",
    "PrepareRequest",
    "HandleRequest",
    "ColumnsRequest",
    "BindRequest",
    "StepRequest",
    "ResetRequest",
    "FinalizeRequest",
    "CreateFunctionRequest",
    "CloseRequest",
    # Wire
    "Parameters",
]
