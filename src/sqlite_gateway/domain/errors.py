"""Error taxonomy for the gateway.

Engine-reported failures keep the engine's result code and message
verbatim. Codec and synthesis failures are raised before any engine call
is made, so the connection is left untouched.

Engine result codes used here:
    SQLITE_ERROR (1): generic SQL error, including syntax errors
    SQLITE_CONSTRAINT (19): constraint violation
    SQLITE_MISMATCH (20): datatype mismatch
    SQLITE_MISUSE (21): library used incorrectly
    SQLITE_RANGE (25): parameter index out of range
"""

from __future__ import annotations

SQLITE_ERROR = 1
SQLITE_CONSTRAINT = 19
SQLITE_MISMATCH = 20
SQLITE_MISUSE = 21
SQLITE_RANGE = 25


class GatewayError(Exception):
    """Base class for every error raised by the gateway."""


class EngineError(GatewayError):
    """An error reported by the SQL engine.

    Attributes:
        code: The engine result code, possibly an extended code.
        message: The engine's error message.
    """

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message

    @property
    def primary_code(self) -> int:
        """The primary result code (extended codes keep it in the low byte)."""
        return self.code & 0xFF

    @classmethod
    def from_code(cls, code: int, message: str) -> EngineError:
        """Build the most specific EngineError subclass for a result code."""
        subclass = _ENGINE_ERRORS.get(code & 0xFF, EngineError)
        return subclass(code, message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EngineError):
            return NotImplemented
        return (self.code, self.message) == (other.code, other.message)

    def __hash__(self) -> int:
        return hash((self.code, self.message))


class SQLSyntaxError(EngineError):
    """SQL error or syntax error (SQLITE_ERROR)."""


class ConstraintViolation(EngineError):
    """A constraint was violated (SQLITE_CONSTRAINT)."""


class TypeMismatch(EngineError):
    """Value and column type disagree (SQLITE_MISMATCH)."""


_ENGINE_ERRORS: dict[int, type[EngineError]] = {
    SQLITE_ERROR: SQLSyntaxError,
    SQLITE_CONSTRAINT: ConstraintViolation,
    SQLITE_MISMATCH: TypeMismatch,
}


class InvalidValueError(GatewayError, ValueError):
    """A value cannot be rendered as a literal or bound as a parameter."""


class UnsupportedSchemaError(GatewayError):
    """Stored table definition falls outside the supported column grammar."""


class InvalidHandleError(GatewayError, LookupError):
    """Prepared statement handle is unknown or already finalized."""


class NotImplementedOperation(GatewayError):
    """The operation exists in the surface but is not implemented."""


class ConnectionClosed(GatewayError):
    """A request reached a connection that is closing or closed."""


class ProtocolError(GatewayError):
    """A command or reply frame could not be decoded."""


class QueueFullError(GatewayError, TimeoutError):
    """A connection's pending request queue stayed full past the timeout."""
