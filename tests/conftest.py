"""Pytest configuration and fixtures for sqlite_gateway tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from sqlite_gateway.adapters.outbound.sqlite_engine import SQLiteEngine
from sqlite_gateway.application.database import Database
from sqlite_gateway.infrastructure.config import Config, CoordinatorConfig, DatabaseConfig
from sqlite_gateway.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """Provide a test configuration with a temporary data directory."""
    return Config(
        database=DatabaseConfig(
            data_dir=temp_dir / "data",
            busy_timeout_seconds=1.0,
        ),
        coordinator=CoordinatorConfig(
            request_timeout_seconds=30.0,
            thread_name_prefix="test-gateway",
        ),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def engine() -> Generator[SQLiteEngine, None, None]:
    """Provide an in-memory SQLite engine."""
    sqlite_engine = SQLiteEngine(busy_timeout=1.0)
    yield sqlite_engine
    sqlite_engine.close()


@pytest.fixture
def db(
    request: pytest.FixtureRequest,
    test_config: Config,
    metrics_registry: MetricsRegistry,
) -> Generator[Database, None, None]:
    """Provide an open in-memory database named after the test."""
    database = Database.open(
        request.node.name, in_memory=True, config=test_config, metrics=metrics_registry
    )
    yield database
    database.close()


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
