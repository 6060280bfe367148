"""Unit tests for the serializing request coordinator."""

from __future__ import annotations

import threading

import pytest
from prometheus_client import CollectorRegistry

from sqlite_gateway.adapters.outbound.frame_driver import EngineDriver
from sqlite_gateway.adapters.outbound.sqlite_engine import SQLiteEngine
from sqlite_gateway.application.coordinator import SerializingCoordinator
from sqlite_gateway.domain.entities import (
    AckReply,
    CloseRequest,
    CreateTableRequest,
    ErrorKind,
    ErrorReply,
    ExecuteRequest,
    FinalizeRequest,
    HandleReply,
    PrepareRequest,
    RowsReply,
    StepRequest,
    WriteRequest,
)
from sqlite_gateway.domain.errors import ConnectionClosed, EngineError, QueueFullError
from sqlite_gateway.domain.value_objects import StatementHandle, TableSchema
from sqlite_gateway.infrastructure.config import Config
from sqlite_gateway.infrastructure.metrics import MetricsRegistry
from sqlite_gateway.ports.inbound.request_coordinator import ConnectionState


class RecordingChannel:
    """Wraps a real driver, counting frames and optionally holding the first one."""

    def __init__(self, hold_first: bool = False) -> None:
        self.driver: EngineDriver | None = None
        self.frames: list[bytes] = []
        self.entered = threading.Event()
        self.release = threading.Event()
        if not hold_first:
            self.release.set()

    def transact(self, frame: bytes) -> bytes:
        self.frames.append(frame)
        if len(self.frames) == 1:
            self.entered.set()
            self.release.wait(5)
        if self.driver is None:
            # sqlite3 connections stay on the thread that opened them
            self.driver = EngineDriver(
                SQLiteEngine(busy_timeout=1.0), MetricsRegistry(CollectorRegistry())
            )
        return self.driver.transact(frame)


@pytest.fixture
def collector() -> CollectorRegistry:
    return CollectorRegistry(auto_describe=True)


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def coordinator(test_config: Config, collector: CollectorRegistry, channel: RecordingChannel):
    instance = SerializingCoordinator(
        "unit",
        lambda: channel,
        config=test_config.coordinator,
        metrics=MetricsRegistry(registry=collector),
    )
    instance.start()
    yield instance
    instance.close(timeout=5)


class TestLifecycle:
    """Tests for connection states."""

    def test_open_then_closed(self, coordinator: SerializingCoordinator) -> None:
        """A started coordinator is open; close moves it to closed."""
        assert coordinator.state is ConnectionState.OPEN

        coordinator.close(timeout=5)

        assert coordinator.state is ConnectionState.CLOSED

    def test_close_is_idempotent(self, coordinator: SerializingCoordinator) -> None:
        """Closing twice is harmless."""
        coordinator.close(timeout=5)
        coordinator.close(timeout=5)

        assert coordinator.state is ConnectionState.CLOSED

    def test_requests_after_close(self, coordinator: SerializingCoordinator) -> None:
        """Submissions to a closed connection fail immediately."""
        coordinator.close(timeout=5)

        with pytest.raises(ConnectionClosed):
            coordinator.call(ExecuteRequest("SELECT 1"))

    def test_close_without_start(self, test_config: Config) -> None:
        """A coordinator that never started closes without an engine."""
        instance = SerializingCoordinator("idle", RecordingChannel, config=test_config.coordinator)

        instance.close()

        assert instance.state is ConnectionState.CLOSED

    def test_open_failure(self, test_config: Config) -> None:
        """A failing engine open surfaces from start and leaves the connection closed."""

        def failing_factory():
            raise EngineError(14, "unable to open database file")

        instance = SerializingCoordinator("broken", failing_factory, config=test_config.coordinator)

        with pytest.raises(EngineError):
            instance.start()
        assert instance.state is ConnectionState.CLOSED

    def test_worker_thread_name(self, coordinator: SerializingCoordinator) -> None:
        """The worker thread carries the configured prefix and the connection name."""
        names = {thread.name for thread in threading.enumerate()}

        assert "test-gateway-unit" in names


class TestSerialization:
    """Tests for request ordering and pending request handling."""

    def test_replies_follow_requests(self, coordinator: SerializingCoordinator) -> None:
        """Each request gets its own reply."""
        coordinator.call(
            CreateTableRequest("t", TableSchema.coerce([("id", "integer", "primary_key")]))
        )

        write = coordinator.call(WriteRequest("t", {"id": 5}))
        read = coordinator.call(ExecuteRequest("SELECT id FROM t"))

        assert write == AckReply(rowid=5, changes=1)
        assert read == RowsReply(columns=("id",), rows=((5,),))

    def test_requests_queued_behind_close_fail(self, test_config: Config) -> None:
        """Requests ahead of close run; requests behind it fail with ConnectionClosed."""
        channel = RecordingChannel(hold_first=True)
        instance = SerializingCoordinator(
            "held",
            lambda: channel,
            config=test_config.coordinator,
            metrics=MetricsRegistry(CollectorRegistry()),
        )
        instance.start()

        first = instance.submit(ExecuteRequest("SELECT 1"))
        assert channel.entered.wait(5)
        closing = instance.submit(CloseRequest())
        behind = instance.submit(ExecuteRequest("SELECT 2"))
        channel.release.set()

        assert isinstance(first.result(5), RowsReply)
        assert closing.result(5) == AckReply()
        with pytest.raises(ConnectionClosed):
            behind.result(5)
        assert instance.state is ConnectionState.CLOSED

    def test_synthesis_errors_skip_the_engine(
        self, coordinator: SerializingCoordinator, channel: RecordingChannel
    ) -> None:
        """Values that cannot be rendered fail before any frame is sent."""
        reply = coordinator.call(WriteRequest("t", {"a": object()}))

        assert isinstance(reply, ErrorReply)
        assert reply.error == ErrorKind.INVALID_VALUE
        assert channel.frames == []


class TestBoundedQueue:
    """Tests for a connection with a bounded request queue."""

    @pytest.fixture
    def held(self) -> RecordingChannel:
        return RecordingChannel(hold_first=True)

    @pytest.fixture
    def bounded(self, test_config: Config, held: RecordingChannel):
        config = test_config.coordinator.model_copy(
            update={"max_queue_size": 1, "request_timeout_seconds": 0.2}
        )
        instance = SerializingCoordinator(
            "bounded", lambda: held, config=config, metrics=MetricsRegistry(CollectorRegistry())
        )
        instance.start()
        yield instance
        held.release.set()
        instance.close(timeout=5)

    def test_full_queue_times_out(
        self, bounded: SerializingCoordinator, held: RecordingChannel
    ) -> None:
        """A submit that cannot enqueue in time raises QueueFullError."""
        first = bounded.submit(ExecuteRequest("SELECT 1"))
        assert held.entered.wait(5)
        second = bounded.submit(ExecuteRequest("SELECT 2"))

        with pytest.raises(QueueFullError):
            bounded.submit(ExecuteRequest("SELECT 3"))

        held.release.set()
        assert isinstance(first.result(5), RowsReply)
        assert isinstance(second.result(5), RowsReply)
        assert bounded.state is ConnectionState.OPEN

    def test_blocked_submit_does_not_hold_state(
        self, bounded: SerializingCoordinator, held: RecordingChannel
    ) -> None:
        """Other threads can read the state while a submit waits for room."""
        bounded.submit(ExecuteRequest("SELECT 1"))
        assert held.entered.wait(5)
        bounded.submit(ExecuteRequest("SELECT 2"))

        waiting: list = []
        submitter = threading.Thread(
            target=lambda: waiting.append(bounded.submit(ExecuteRequest("SELECT 3"), timeout=5))
        )
        submitter.start()

        reader = threading.Thread(target=lambda: bounded.state)
        reader.start()
        reader.join(1)
        assert not reader.is_alive()
        assert submitter.is_alive()

        held.release.set()
        submitter.join(5)
        assert not submitter.is_alive()
        assert isinstance(waiting[0].result(5), RowsReply)


class TestHandles:
    """Tests for prepared statement handle tracking."""

    def test_unknown_handle_short_circuits(
        self, coordinator: SerializingCoordinator, channel: RecordingChannel
    ) -> None:
        """Unknown handles are rejected without an engine call."""
        reply = coordinator.call(StepRequest(StatementHandle(42)))

        assert isinstance(reply, ErrorReply)
        assert reply.error == ErrorKind.INVALID_HANDLE
        assert channel.frames == []

    def test_handles_tracked_until_finalized(self, coordinator: SerializingCoordinator) -> None:
        """Prepared handles are live until finalized."""
        prepared = coordinator.call(PrepareRequest("SELECT 1"))
        assert isinstance(prepared, HandleReply)
        assert prepared.handle in coordinator.live_handles

        assert coordinator.call(FinalizeRequest(prepared.handle)) == AckReply()
        assert prepared.handle not in coordinator.live_handles

        again = coordinator.call(StepRequest(prepared.handle))
        assert again.error == ErrorKind.INVALID_HANDLE


class TestMetrics:
    """Tests for request metrics."""

    def test_requests_counted(
        self, coordinator: SerializingCoordinator, collector: CollectorRegistry
    ) -> None:
        """Requests are counted by operation and status."""
        coordinator.call(ExecuteRequest("SELECT 1"))
        coordinator.call(ExecuteRequest("SELEC 1"))

        ok = collector.get_sample_value(
            "sqlite_gateway_requests_total", {"operation": "execute", "status": "ok"}
        )
        failed = collector.get_sample_value(
            "sqlite_gateway_requests_total", {"operation": "execute", "status": "error"}
        )
        engine_errors = collector.get_sample_value(
            "sqlite_gateway_engine_errors_total", {"code": "1"}
        )

        assert ok == 1.0
        assert failed == 1.0
        assert engine_errors == 1.0

    def test_connection_gauge(
        self, coordinator: SerializingCoordinator, collector: CollectorRegistry
    ) -> None:
        """The open connection gauge tracks the worker's lifetime."""
        assert collector.get_sample_value("sqlite_gateway_connections_open") == 1.0

        coordinator.close(timeout=5)

        assert collector.get_sample_value("sqlite_gateway_connections_open") == 0.0
