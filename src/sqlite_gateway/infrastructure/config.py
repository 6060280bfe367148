"""Configuration management for the SQLite gateway."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MEMORY_PATH = ":memory:"


class DatabaseConfig(BaseModel):
    """Database file configuration."""

    data_dir: Path = Field(default=Path("data"), description="Directory holding database files")
    default_name: str = Field(
        default="default", min_length=1, description="Logical name of the default connection"
    )
    in_memory: bool = Field(default=False, description="Open connections in memory by default")
    busy_timeout_seconds: float = Field(
        default=5.0, ge=0, description="Seconds to wait on a locked database"
    )

    def resolve_path(self, name: str, in_memory: bool | None = None) -> str:
        """Return the engine path for a logical connection name.

        Args:
            name: Logical connection name.
            in_memory: Override the configured in-memory default.

        Returns:
            "<data_dir>/<name>.db", or ":memory:".
        """
        if self.in_memory if in_memory is None else in_memory:
            return MEMORY_PATH
        return str(self.data_dir / f"{name}.db")


class CoordinatorConfig(BaseModel):
    """Serializing coordinator configuration."""

    request_timeout_seconds: float | None = Field(
        default=30.0, gt=0, description="Seconds a caller waits for a reply; None waits forever"
    )
    max_queue_size: int = Field(
        default=0, ge=0, description="Pending request bound per connection; 0 is unbounded"
    )
    thread_name_prefix: str = Field(
        default="sqlite-gateway", description="Worker thread name prefix"
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(
        default="sqlite_gateway", description="Service name for tracing"
    )
    metrics_port: int | None = Field(
        default=None, ge=1, le=65535, description="Prometheus metrics port; None disables it"
    )


class Config(BaseSettings):
    """Main configuration for the SQLite gateway."""

    model_config = SettingsConfigDict(
        env_prefix="SQLITE_GATEWAY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    coordinator: CoordinatorConfig = Field(default_factory=CoordinatorConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    def ensure_directories(self) -> None:
        """Ensure the data directory exists."""
        self.database.data_dir.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
