"""Infrastructure layer - cross-cutting concerns."""

from sqlite_gateway.infrastructure.config import Config, get_config
from sqlite_gateway.infrastructure.logging import get_logger, setup_logging
from sqlite_gateway.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from sqlite_gateway.infrastructure.tracing import get_tracer, setup_tracing, trace_span


def setup_observability(config: Config | None = None) -> MetricsRegistry:
    """Configure logging, tracing and metrics from the gateway config."""
    observability = (config or get_config()).observability
    setup_logging(observability.log_level, observability.log_format)
    setup_tracing(observability.otel_service_name, observability.otel_endpoint)
    return setup_metrics(observability.metrics_port)


__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
    "setup_observability",
]
