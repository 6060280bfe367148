"""Unit tests for configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from sqlite_gateway.infrastructure.config import (
    Config,
    CoordinatorConfig,
    DatabaseConfig,
    get_config,
)


class TestDefaults:
    """Tests for default settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Defaults apply when nothing is set in the environment."""
        monkeypatch.delenv("SQLITE_GATEWAY_DATABASE__DEFAULT_NAME", raising=False)

        config = Config()

        assert config.database.default_name == "default"
        assert config.database.in_memory is False
        assert config.database.busy_timeout_seconds == 5.0
        assert config.coordinator.request_timeout_seconds == 30.0
        assert config.coordinator.max_queue_size == 0
        assert config.observability.log_format == "json"

    def test_get_config_is_cached(self) -> None:
        """The global config is built once."""
        assert get_config() is get_config()


class TestEnvironment:
    """Tests for environment overrides."""

    def test_nested_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested settings are read with the prefix and double underscores."""
        monkeypatch.setenv("SQLITE_GATEWAY_DATABASE__DEFAULT_NAME", "main")
        monkeypatch.setenv("SQLITE_GATEWAY_DATABASE__IN_MEMORY", "true")
        monkeypatch.setenv("SQLITE_GATEWAY_COORDINATOR__REQUEST_TIMEOUT_SECONDS", "2.5")

        config = Config()

        assert config.database.default_name == "main"
        assert config.database.in_memory is True
        assert config.coordinator.request_timeout_seconds == 2.5

    def test_invalid_value_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Out-of-range values fail validation."""
        monkeypatch.setenv("SQLITE_GATEWAY_DATABASE__BUSY_TIMEOUT_SECONDS", "-1")

        with pytest.raises(ValidationError):
            Config()


class TestDatabaseConfig:
    """Tests for database path resolution."""

    def test_resolve_path(self, temp_dir: Path) -> None:
        """Names map to files under the data directory."""
        config = DatabaseConfig(data_dir=temp_dir)

        assert config.resolve_path("orders") == str(temp_dir / "orders.db")

    def test_resolve_in_memory(self, temp_dir: Path) -> None:
        """In-memory connections use the engine's memory path."""
        config = DatabaseConfig(data_dir=temp_dir, in_memory=True)

        assert config.resolve_path("orders") == ":memory:"
        assert config.resolve_path("orders", in_memory=False) == str(temp_dir / "orders.db")
        assert DatabaseConfig().resolve_path("x", in_memory=True) == ":memory:"

    def test_ensure_directories(self, temp_dir: Path) -> None:
        """The data directory is created on request."""
        config = Config(database=DatabaseConfig(data_dir=temp_dir / "a" / "b"))

        config.ensure_directories()

        assert (temp_dir / "a" / "b").is_dir()

    def test_queue_size_must_be_non_negative(self) -> None:
        """A negative queue bound is rejected."""
        with pytest.raises(ValidationError):
            CoordinatorConfig(max_queue_size=-1)
