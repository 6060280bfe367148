"""Outbound ports - interfaces for the engine the gateway depends on."""

from sqlite_gateway.ports.outbound.engine_channel import EngineChannel
from sqlite_gateway.ports.outbound.sql_engine import EngineStatement, SQLEngine

__all__ = [
    "EngineChannel",
    "EngineStatement",
    "SQLEngine",
]
