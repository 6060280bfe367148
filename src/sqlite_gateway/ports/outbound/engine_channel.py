"""Engine channel port.

The byte-frame boundary between the coordinator's worker and the engine
driver. The worker sends one encoded command frame and blocks for exactly
one encoded reply frame, so at most one command is in flight per channel.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol


class EngineChannel(Protocol):
    """Protocol for a synchronous command/reply frame exchange."""

    @abstractmethod
    def transact(self, frame: bytes) -> bytes:
        """Send one command frame and return its reply frame.

        Undecodable command frames are answered with an error reply frame,
        not an exception.
        """
        ...
