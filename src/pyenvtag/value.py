from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from .kinds import (
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    UInt,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)
from .tags import UnmarshalOption
from .unmarshal import decode_as


class Value(str):
    """A raw environment value with typed accessors.

    Every accessor raises the same errors as :func:`pyenvtag.unmarshal`;
    the key reported in them is ``"Value"``.
    """

    __slots__ = ()

    def unmarshal(self, type_: Any, *opts: UnmarshalOption) -> Any:
        """Decode the value as ``type_``.

        List separators can only be changed with :func:`pyenvtag.separator`.
        """
        return decode_as(str(self), type_, *opts)

    def to_bool(self) -> bool:
        return self.unmarshal(bool)

    def to_int(self) -> int:
        return self.unmarshal(int)

    def to_int8(self) -> int:
        return self.unmarshal(Int8)

    def to_int16(self) -> int:
        return self.unmarshal(Int16)

    def to_int32(self) -> int:
        return self.unmarshal(Int32)

    def to_int64(self) -> int:
        return self.unmarshal(Int64)

    def to_uint(self) -> int:
        return self.unmarshal(UInt)

    def to_uint8(self) -> int:
        return self.unmarshal(UInt8)

    def to_uint16(self) -> int:
        return self.unmarshal(UInt16)

    def to_uint32(self) -> int:
        return self.unmarshal(UInt32)

    def to_uint64(self) -> int:
        return self.unmarshal(UInt64)

    def to_float32(self) -> float:
        return self.unmarshal(Float32)

    def to_float64(self) -> float:
        return self.unmarshal(Float64)

    def to_duration(self) -> timedelta:
        return self.unmarshal(timedelta)

    def to_time(self) -> datetime:
        return self.unmarshal(datetime)
