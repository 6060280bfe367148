"""Prometheus metrics for the SQLite gateway."""

from __future__ import annotations

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)


class MetricsRegistry:
    """Registry of all gateway metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or REGISTRY

        # Request metrics
        self.requests_total = Counter(
            "sqlite_gateway_requests_total",
            "Total requests processed by connection workers",
            ["operation", "status"],  # status: ok, error
            registry=self._registry,
        )

        self.request_latency_seconds = Histogram(
            "sqlite_gateway_request_latency_seconds",
            "Time from dequeue to reply, in seconds",
            ["operation"],
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        self.queue_depth = Gauge(
            "sqlite_gateway_queue_depth",
            "Requests waiting for a connection worker",
            ["connection"],
            registry=self._registry,
        )

        # Connection metrics
        self.connections_open = Gauge(
            "sqlite_gateway_connections_open",
            "Number of open connections",
            registry=self._registry,
        )

        self.prepared_statements_live = Gauge(
            "sqlite_gateway_prepared_statements_live",
            "Prepared statements not yet finalized",
            ["connection"],
            registry=self._registry,
        )

        # Engine metrics
        self.engine_errors_total = Counter(
            "sqlite_gateway_engine_errors_total",
            "Errors reported by the SQL engine",
            ["code"],  # primary result code
            registry=self._registry,
        )

        self.frames_rejected_total = Counter(
            "sqlite_gateway_frames_rejected_total",
            "Command frames the engine driver could not decode",
            registry=self._registry,
        )

        self.info = Info(
            "sqlite_gateway",
            "SQLite gateway information",
            registry=self._registry,
        )


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int | None = None, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up the global metrics registry.

    Args:
        port: Port for the Prometheus scrape endpoint; None starts no server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    import sqlite3

    from sqlite_gateway import __version__

    _metrics.info.info({"version": __version__, "sqlite_version": sqlite3.sqlite_version})

    if port is not None:
        start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
