"""Request coordinator port.

This inbound port is what the caller-facing Database facade talks to: it
accepts one request at a time per caller and resolves it to exactly one
reply, while the implementation serializes all requests for a connection.
"""

from __future__ import annotations

from abc import abstractmethod
from concurrent.futures import Future
from enum import Enum
from typing import Protocol

from sqlite_gateway.domain.entities import Reply, Request


class ConnectionState(Enum):
    """Lifecycle of a connection."""

    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestCoordinator(Protocol):
    """Protocol for a serializing request coordinator."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Logical connection name."""
        ...

    @property
    @abstractmethod
    def state(self) -> ConnectionState:
        ...

    @abstractmethod
    def submit(self, request: Request, timeout: float | None = None) -> Future[Reply]:
        """Enqueue a request, waiting up to timeout for room in a bounded queue.

        Returns:
            A future resolved with the request's reply.

        Raises:
            ConnectionClosed: If the connection is closing or closed.
            QueueFullError: If the queue stays full past the timeout.
        """
        ...

    @abstractmethod
    def call(self, request: Request, timeout: float | None = None) -> Reply:
        """Submit a request and wait for its reply.

        Raises:
            ConnectionClosed: If the connection is closing or closed.
            TimeoutError: If no reply arrives in time. The request still runs.
        """
        ...
