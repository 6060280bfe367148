"""Binary encoding primitives shared by commands and replies.

All integers are big-endian. Every variable-length item is length-prefixed,
so payloads are self-delimiting and can cross any byte-oriented transport.

Value encoding: tag(1) followed by

    Tag     | Body
    --------|-----------------------------
    NULL    | (nothing)
    INTEGER | int64 (8)
    REAL    | float64 (8)
    TEXT    | length(4) + UTF-8 bytes
    BLOB    | length(4) + raw bytes

Parameter encoding: kind(1) followed by values normalized for binding
(integers beyond 64 bits travel as REAL, as the engine reads such a literal)

    NONE       | (nothing)
    POSITIONAL | count(4) + values
    KEYED      | count(4) + (key + value)*, key = INDEX uint32 | NAME text
"""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import Mapping, Sequence, Union

from sqlite_gateway.domain.errors import InvalidValueError, ProtocolError
from sqlite_gateway.domain.services.value_codec import to_bindable
from sqlite_gateway.domain.value_objects.values import SQLValue

Parameters = Union[Sequence[SQLValue], Mapping[Union[int, str], SQLValue], None]
"""Statement parameters: positional values, or values keyed by index or name."""


class ValueTag(IntEnum):
    """Type tag of an encoded value."""

    NULL = 0
    INTEGER = 1
    REAL = 2
    TEXT = 3
    BLOB = 4


class ParamsKind(IntEnum):
    """Shape of encoded statement parameters."""

    NONE = 0
    POSITIONAL = 1
    KEYED = 2


class KeyTag(IntEnum):
    """Type tag of a parameter key."""

    INDEX = 0
    NAME = 1


_U8 = struct.Struct(">B")
_U32 = struct.Struct(">I")
_I64 = struct.Struct(">q")
_F64 = struct.Struct(">d")


class WireWriter:
    """Accumulates an encoded payload."""

    def __init__(self) -> None:
        self._parts: list[bytes] = []

    def u8(self, value: int) -> WireWriter:
        self._parts.append(_U8.pack(value))
        return self

    def u32(self, value: int) -> WireWriter:
        self._parts.append(_U32.pack(value))
        return self

    def i64(self, value: int) -> WireWriter:
        self._parts.append(_I64.pack(value))
        return self

    def f64(self, value: float) -> WireWriter:
        self._parts.append(_F64.pack(value))
        return self

    def raw(self, data: bytes) -> WireWriter:
        self._parts.append(_U32.pack(len(data)))
        self._parts.append(data)
        return self

    def text(self, value: str) -> WireWriter:
        try:
            encoded = value.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidValueError(f"Text is not encodable as UTF-8: {e}") from e
        return self.raw(encoded)

    def optional_text(self, value: str | None) -> WireWriter:
        if value is None:
            return self.u8(0)
        return self.u8(1).text(value)

    def optional_i64(self, value: int | None) -> WireWriter:
        if value is None:
            return self.u8(0)
        return self.u8(1).i64(value)

    def value(self, value: SQLValue) -> WireWriter:
        if value is None:
            return self.u8(ValueTag.NULL)
        if isinstance(value, bool):
            return self.u8(ValueTag.INTEGER).i64(int(value))
        if isinstance(value, int):
            try:
                return self.u8(ValueTag.INTEGER).i64(value)
            except struct.error:
                raise InvalidValueError(f"Integer out of 64-bit range: {value}") from None
        if isinstance(value, float):
            return self.u8(ValueTag.REAL).f64(value)
        if isinstance(value, str):
            return self.u8(ValueTag.TEXT).text(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return self.u8(ValueTag.BLOB).raw(bytes(value))
        raise InvalidValueError(f"Cannot encode value of type {type(value).__name__}")

    def values(self, values: Sequence[SQLValue]) -> WireWriter:
        self.u32(len(values))
        for item in values:
            self.value(item)
        return self

    def texts(self, values: Sequence[str]) -> WireWriter:
        self.u32(len(values))
        for item in values:
            self.text(item)
        return self

    def params(self, params: Parameters) -> WireWriter:
        if params is None:
            return self.u8(ParamsKind.NONE)

        if isinstance(params, Mapping):
            self.u8(ParamsKind.KEYED).u32(len(params))
            for key, item in params.items():
                if isinstance(key, int) and not isinstance(key, bool):
                    if key < 0:
                        raise InvalidValueError(f"Invalid parameter index: {key}")
                    self.u8(KeyTag.INDEX).u32(key)
                elif isinstance(key, str):
                    self.u8(KeyTag.NAME).text(key)
                else:
                    raise InvalidValueError(f"Invalid parameter key: {key!r}")
                self.value(to_bindable(item))
            return self

        if isinstance(params, (str, bytes, bytearray)):
            raise InvalidValueError("Parameters must be a sequence or mapping of values")
        self.u8(ParamsKind.POSITIONAL)
        return self.values([to_bindable(item) for item in params])

    def getvalue(self) -> bytes:
        return b"".join(self._parts)


class WireReader:
    """Decodes an encoded payload. Truncation raises ProtocolError."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    @property
    def exhausted(self) -> bool:
        return self._pos >= len(self._data)

    def _unpack(self, fmt: struct.Struct) -> int | float:
        try:
            (value,) = fmt.unpack_from(self._data, self._pos)
        except struct.error as e:
            raise ProtocolError(f"Truncated payload at offset {self._pos}") from e
        self._pos += fmt.size
        return value

    def u8(self) -> int:
        return self._unpack(_U8)

    def u32(self) -> int:
        return self._unpack(_U32)

    def i64(self) -> int:
        return self._unpack(_I64)

    def f64(self) -> float:
        return self._unpack(_F64)

    def raw(self) -> bytes:
        length = self.u32()
        end = self._pos + length
        if end > len(self._data):
            raise ProtocolError(f"Truncated payload: need {length} bytes at offset {self._pos}")
        data = bytes(self._data[self._pos : end])
        self._pos = end
        return data

    def text(self) -> str:
        try:
            return self.raw().decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Invalid UTF-8 in payload: {e}") from e

    def optional_text(self) -> str | None:
        return self.text() if self.u8() else None

    def optional_i64(self) -> int | None:
        return self.i64() if self.u8() else None

    def value(self) -> SQLValue:
        tag = self.u8()
        if tag == ValueTag.NULL:
            return None
        if tag == ValueTag.INTEGER:
            return self.i64()
        if tag == ValueTag.REAL:
            return self.f64()
        if tag == ValueTag.TEXT:
            return self.text()
        if tag == ValueTag.BLOB:
            return self.raw()
        raise ProtocolError(f"Unknown value tag: {tag}")

    def values(self) -> list[SQLValue]:
        return [self.value() for _ in range(self.u32())]

    def texts(self) -> list[str]:
        return [self.text() for _ in range(self.u32())]

    def params(self) -> Parameters:
        kind = self.u8()
        if kind == ParamsKind.NONE:
            return None
        if kind == ParamsKind.POSITIONAL:
            return self.values()
        if kind == ParamsKind.KEYED:
            keyed: dict[int | str, SQLValue] = {}
            for _ in range(self.u32()):
                key_tag = self.u8()
                if key_tag == KeyTag.INDEX:
                    key: int | str = self.u32()
                elif key_tag == KeyTag.NAME:
                    key = self.text()
                else:
                    raise ProtocolError(f"Unknown parameter key tag: {key_tag}")
                keyed[key] = self.value()
            return keyed
        raise ProtocolError(f"Unknown parameters kind: {kind}")


FRAME_HEADER = struct.Struct(">BI")
"""Frame header: tag(1) + payload length(4)."""


def pack_frame(tag: int, payload: bytes) -> bytes:
    """Prefix a payload with its tag and length."""
    return FRAME_HEADER.pack(tag, len(payload)) + payload


def unpack_frame(data: bytes) -> tuple[int, bytes]:
    """Split a frame into its tag and payload.

    Raises:
        ProtocolError: If the frame is truncated or has trailing bytes.
    """
    if len(data) < FRAME_HEADER.size:
        raise ProtocolError(
            f"Frame requires at least {FRAME_HEADER.size} bytes, got {len(data)}"
        )
    tag, length = FRAME_HEADER.unpack_from(data)
    payload = data[FRAME_HEADER.size :]
    if len(payload) != length:
        raise ProtocolError(f"Frame declares {length} payload bytes, got {len(payload)}")
    return tag, payload
