"""Inbound ports - the API the gateway offers to its callers."""

from sqlite_gateway.ports.inbound.request_coordinator import ConnectionState, RequestCoordinator

__all__ = [
    "ConnectionState",
    "RequestCoordinator",
]
