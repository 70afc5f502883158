"""Type markers understood by the decoder.

Python has no fixed-width integers or pointers, so both are spelled with
annotations: ``Int8`` .. ``UInt64`` attach a :class:`Bits` marker to ``int``
or ``float`` via :data:`typing.Annotated`, and :class:`Ref` is a one-slot cell
standing in for a pointer.
"""

from __future__ import annotations

import types
import typing
from dataclasses import dataclass
from typing import Annotated, Any, Generic, TypeVar

T = TypeVar("T")

# Width used for plain ``int`` and ``UInt``.
NATIVE_BITS = 64


@dataclass(frozen=True)
class Bits:
    """Width marker for numeric annotations."""

    size: int
    signed: bool = True


Int8 = Annotated[int, Bits(8)]
Int16 = Annotated[int, Bits(16)]
Int32 = Annotated[int, Bits(32)]
Int64 = Annotated[int, Bits(64)]
UInt = Annotated[int, Bits(NATIVE_BITS, signed=False)]
UInt8 = Annotated[int, Bits(8, signed=False)]
UInt16 = Annotated[int, Bits(16, signed=False)]
UInt32 = Annotated[int, Bits(32, signed=False)]
UInt64 = Annotated[int, Bits(64, signed=False)]
Float32 = Annotated[float, Bits(32)]
Float64 = Annotated[float, Bits(64)]


class Ref(Generic[T]):
    """Mutable reference cell.

    ``Ref[Ref[int]]`` is the equivalent of a pointer to a pointer; the decoder
    fills empty cells on demand.
    """

    __slots__ = ("value",)

    def __init__(self, value: T | None = None) -> None:
        self.value = value

    def __bool__(self) -> bool:
        return self.value is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ref):
            return NotImplemented
        return self.value == other.value

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Ref({self.value!r})"


def split_annotated(tp: Any) -> tuple[Any, Bits | None]:
    """Return ``(base_type, bits_marker)`` for ``tp``."""

    if typing.get_origin(tp) is Annotated:
        base, *extras = typing.get_args(tp)
        for extra in extras:
            if isinstance(extra, Bits):
                return base, extra
        return split_annotated(base)
    return tp, None


def ref_target(tp: Any) -> Any | None:
    """Return the referenced type if ``tp`` is ``Ref[X]``, else ``None``."""

    if tp is Ref:
        return Any
    if typing.get_origin(tp) is Ref:
        return typing.get_args(tp)[0]
    return None


def optional_target(tp: Any) -> Any | None:
    """Return ``X`` for ``Optional[X]`` / ``X | None``, else ``None``."""

    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1 and len(typing.get_args(tp)) == 2:
            return args[0]
    return None


def sequence_target(tp: Any) -> tuple[type, Any] | None:
    """Return ``(container, element_type)`` for ``list[X]``/``tuple[X, ...]``."""

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)
    if origin is list and len(args) == 1:
        return list, args[0]
    if origin is tuple and len(args) == 2 and args[1] is Ellipsis:
        return tuple, args[0]
    return None


def unwrap_newtype(tp: Any) -> Any:
    """Follow ``typing.NewType`` aliases down to a real class."""

    while hasattr(tp, "__supertype__"):
        tp = tp.__supertype__
    return tp
