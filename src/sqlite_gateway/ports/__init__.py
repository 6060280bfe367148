"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: APIs offered to callers (RequestCoordinator)
- Outbound ports: Dependencies on the engine (SQLEngine, EngineChannel)

Adapters implement these ports with concrete functionality.
"""

from sqlite_gateway.ports.inbound import ConnectionState, RequestCoordinator
from sqlite_gateway.ports.outbound import EngineChannel, EngineStatement, SQLEngine

__all__ = [
    # Inbound ports
    "ConnectionState",
    "RequestCoordinator",
    # Outbound ports
    "EngineChannel",
    "EngineStatement",
    "SQLEngine",
]
