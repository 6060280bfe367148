"""Serializing coordinator: single-owner access to one engine connection.

Every request for a connection goes through one FIFO queue drained by one
worker thread. The worker opens the engine, then handles one request to
completion (statement synthesis, command frame, engine call, reply
decode) before taking the next, so at most one command is ever in flight
against the engine. Callers block on a Future for their reply.

With max_queue_size set, a submission waits up to the request timeout for
room in the queue and then fails with QueueFullError. The wait happens
outside the state lock.

Lifecycle:
    OPEN     accepting requests
    CLOSING  close dequeued; new submissions fail with ConnectionClosed
    CLOSED   engine closed; requests still queued fail with ConnectionClosed

Prepared statement handles are tracked here as well as in the driver, so
requests naming an unknown or finalized handle are answered without an
engine call.
"""

from __future__ import annotations

import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
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
    ListTablesCommand,
    PrepareCommand,
    ResetCommand,
    StepCommand,
    TableDefinitionCommand,
)
from sqlite_gateway.domain.entities.replies import (
    AckReply,
    ErrorKind,
    ErrorReply,
    HandleReply,
    Reply,
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
from sqlite_gateway.domain.errors import ConnectionClosed, GatewayError, QueueFullError
from sqlite_gateway.domain.services.sql_synthesizer import (
    create_table_sql,
    delete_sql,
    drop_table_sql,
    insert_sql,
    select_sql,
    update_sql,
)
from sqlite_gateway.domain.value_objects.identifiers import StatementHandle
from sqlite_gateway.infrastructure.config import CoordinatorConfig, get_config
from sqlite_gateway.infrastructure.logging import get_logger
from sqlite_gateway.infrastructure.metrics import MetricsRegistry, get_metrics
from sqlite_gateway.infrastructure.tracing import trace_span
from sqlite_gateway.ports.inbound.request_coordinator import ConnectionState
from sqlite_gateway.ports.outbound.engine_channel import EngineChannel

ChannelFactory = Callable[[], EngineChannel]
"""Opens the engine channel. Called once, on the worker thread."""


@dataclass
class _Envelope:
    """A queued request and the future its caller waits on."""

    request: Request
    future: Future = field(default_factory=Future)


def _to_command(request: Request) -> Command:
    """Translate a caller request into the engine command that serves it."""
    if isinstance(request, ExecuteRequest):
        return ExecuteCommand(request.sql, request.params)
    if isinstance(request, ExecuteScriptRequest):
        return ExecuteScriptCommand(request.script)
    if isinstance(request, CreateTableRequest):
        return ExecuteCommand(create_table_sql(request.table, request.schema, request.unsafe))
    if isinstance(request, ListTablesRequest):
        return ListTablesCommand()
    if isinstance(request, TableInfoRequest):
        return TableDefinitionCommand(request.table)
    if isinstance(request, WriteRequest):
        return ExecuteCommand(insert_sql(request.table, request.data, request.unsafe))
    if isinstance(request, WriteManyRequest):
        return ExecuteManyCommand(
            tuple(insert_sql(request.table, row, request.unsafe) for row in request.rows)
        )
    if isinstance(request, UpdateRequest):
        column, value = request.predicate
        return ExecuteCommand(
            update_sql(request.table, column, value, request.data, request.unsafe)
        )
    if isinstance(request, ReadRequest):
        column, value = request.predicate if request.predicate is not None else (None, None)
        return ExecuteCommand(
            select_sql(request.table, column, value, request.columns, request.unsafe)
        )
    if isinstance(request, DeleteRequest):
        column, value = request.predicate
        return ExecuteCommand(delete_sql(request.table, column, value, request.unsafe))
    if isinstance(request, DropTableRequest):
        return ExecuteCommand(drop_table_sql(request.table))
    if isinstance(request, PrepareRequest):
        return PrepareCommand(request.sql)
    if isinstance(request, ColumnsRequest):
        return ColumnsCommand(request.handle)
    if isinstance(request, BindRequest):
        return BindCommand(request.handle, request.params)
    if isinstance(request, StepRequest):
        return StepCommand(request.handle)
    if isinstance(request, ResetRequest):
        return ResetCommand(request.handle)
    if isinstance(request, FinalizeRequest):
        return FinalizeCommand(request.handle)
    if isinstance(request, CreateFunctionRequest):
        return CreateFunctionCommand(request.name, request.num_args)
    raise TypeError(f"Unsupported request: {type(request).__name__}")


class SerializingCoordinator:
    """Implements the RequestCoordinator protocol with one worker thread.

    Example:
        coordinator = SerializingCoordinator("main", lambda: EngineDriver(SQLiteEngine()))
        coordinator.start()
        reply = coordinator.call(ExecuteRequest("SELECT 1"))
        coordinator.close()
    """

    def __init__(
        self,
        name: str,
        channel_factory: ChannelFactory,
        config: CoordinatorConfig | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Create a coordinator. The engine is not opened until start().

        Args:
            name: Logical connection name, used in logs and metrics.
            channel_factory: Opens the engine channel on the worker thread.
            config: Coordinator settings (default from config).
            metrics: Metrics registry (default: global registry).
        """
        self._name = name
        self._channel_factory = channel_factory
        self._config = config or get_config().coordinator
        self._metrics = metrics or get_metrics()
        self._logger = get_logger(__name__, connection=name)

        self._queue: queue.Queue[_Envelope] = queue.Queue(maxsize=self._config.max_queue_size)
        self._state = ConnectionState.OPEN
        self._state_lock = threading.Lock()
        self._live_handles: set[StatementHandle] = set()
        self._thread: threading.Thread | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ConnectionState:
        with self._state_lock:
            return self._state

    @property
    def live_handles(self) -> frozenset[StatementHandle]:
        return frozenset(self._live_handles)

    def start(self) -> None:
        """Start the worker and wait until the engine is open.

        Raises:
            EngineError: If the engine cannot be opened.
            RuntimeError: If the coordinator was already started.
        """
        if self._thread is not None:
            raise RuntimeError(f"Coordinator '{self._name}' already started")

        ready: Future[None] = Future()
        self._thread = threading.Thread(
            target=self._run,
            args=(ready,),
            name=f"{self._config.thread_name_prefix}-{self._name}",
            daemon=True,
        )
        self._thread.start()
        ready.result()

    def submit(self, request: Request, timeout: float | None = None) -> Future[Reply]:
        state = self.state
        if state is not ConnectionState.OPEN:
            raise ConnectionClosed(f"Connection '{self._name}' is {state.value}")

        envelope = _Envelope(request)
        if timeout is None:
            timeout = self._config.request_timeout_seconds
        try:
            self._queue.put(envelope, timeout=timeout)
        except queue.Full:
            raise QueueFullError(
                f"Connection '{self._name}' has {self._queue.maxsize} pending requests"
            ) from None

        # The worker may have exited and drained the queue while this put waited
        if self.state is ConnectionState.CLOSED:
            self._fail_pending()
        self._metrics.queue_depth.labels(connection=self._name).set(self._queue.qsize())
        return envelope.future

    def call(self, request: Request, timeout: float | None = None) -> Reply:
        if timeout is None:
            timeout = self._config.request_timeout_seconds
        return self.submit(request, timeout).result(timeout)

    def close(self, timeout: float | None = None) -> None:
        """Close the connection and wait for the worker to exit. Idempotent."""
        if self._thread is None:
            with self._state_lock:
                self._state = ConnectionState.CLOSED
            return

        try:
            reply = self.call(CloseRequest(), timeout)
        except ConnectionClosed:
            reply = None
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        if isinstance(reply, ErrorReply):
            raise reply.to_exception()

    # Worker thread

    def _run(self, ready: Future[None]) -> None:
        try:
            channel = self._channel_factory()
        except BaseException as e:
            with self._state_lock:
                self._state = ConnectionState.CLOSED
            self._logger.warning("connection_open_failed", error=str(e))
            ready.set_exception(e)
            return

        self._metrics.connections_open.inc()
        self._logger.info("connection_opened")
        ready.set_result(None)

        try:
            while True:
                envelope = self._queue.get()
                self._metrics.queue_depth.labels(connection=self._name).set(self._queue.qsize())
                if isinstance(envelope.request, CloseRequest):
                    self._close(channel, envelope)
                    break
                self._dispatch(channel, envelope)
        except BaseException:
            self._logger.exception("worker_exited_abnormally")
            raise
        finally:
            with self._state_lock:
                self._state = ConnectionState.CLOSED
            self._live_handles.clear()
            self._metrics.prepared_statements_live.labels(connection=self._name).set(0)
            self._metrics.connections_open.dec()
            self._fail_pending()

    def _dispatch(self, channel: EngineChannel, envelope: _Envelope) -> None:
        request = envelope.request
        started = time.perf_counter()

        with trace_span(
            "sqlite_gateway.request",
            {"db.system": "sqlite", "db.connection": self._name, "db.operation": request.operation},
        ):
            try:
                reply = self._process(channel, request)
            except Exception as e:
                self._record(request, "error", started)
                self._logger.error("request_failed", operation=request.operation, error=repr(e))
                envelope.future.set_exception(e)
                return

        status = "error" if isinstance(reply, ErrorReply) else "ok"
        self._record(request, status, started)
        if isinstance(reply, ErrorReply):
            self._log_error(request, reply)
        envelope.future.set_result(reply)

    def _process(self, channel: EngineChannel, request: Request) -> Reply:
        if isinstance(request, HandleRequest) and request.handle not in self._live_handles:
            return ErrorReply(
                ErrorKind.INVALID_HANDLE, None, f"Unknown statement handle: {request.handle}"
            )

        try:
            frame = _to_command(request).to_bytes()
        except GatewayError as e:
            return ErrorReply.from_exception(e)

        reply = Reply.from_bytes(channel.transact(frame))

        if isinstance(request, PrepareRequest) and isinstance(reply, HandleReply):
            self._live_handles.add(reply.handle)
        elif isinstance(request, FinalizeRequest) and isinstance(reply, AckReply):
            self._live_handles.discard(request.handle)
        if isinstance(request, (PrepareRequest, FinalizeRequest)):
            self._metrics.prepared_statements_live.labels(connection=self._name).set(
                len(self._live_handles)
            )
        return reply

    def _close(self, channel: EngineChannel, envelope: _Envelope) -> None:
        with self._state_lock:
            self._state = ConnectionState.CLOSING
        self._logger.info("connection_closing", live_handles=len(self._live_handles))

        started = time.perf_counter()
        try:
            reply = Reply.from_bytes(channel.transact(CloseCommand().to_bytes()))
        except Exception as e:
            envelope.future.set_exception(e)
            raise
        self._record(envelope.request, "ok" if isinstance(reply, AckReply) else "error", started)
        self._live_handles.clear()

        with self._state_lock:
            self._state = ConnectionState.CLOSED
        self._logger.info("connection_closed")
        envelope.future.set_result(reply)

    def _fail_pending(self) -> None:
        while True:
            try:
                envelope = self._queue.get_nowait()
            except queue.Empty:
                break
            envelope.future.set_exception(
                ConnectionClosed(f"Connection '{self._name}' closed before the request ran")
            )
        self._metrics.queue_depth.labels(connection=self._name).set(0)

    def _record(self, request: Request, status: str, started: float) -> None:
        self._metrics.requests_total.labels(operation=request.operation, status=status).inc()
        self._metrics.request_latency_seconds.labels(operation=request.operation).observe(
            time.perf_counter() - started
        )

    def _log_error(self, request: Request, reply: ErrorReply) -> None:
        if reply.error == ErrorKind.ENGINE:
            code = reply.code or 0
            self._metrics.engine_errors_total.labels(code=str(code & 0xFF)).inc()
            self._logger.warning(
                "engine_error", operation=request.operation, code=code, message=reply.message
            )
        else:
            self._logger.info(
                "request_rejected",
                operation=request.operation,
                kind=reply.error.name,
                message=reply.message,
            )
