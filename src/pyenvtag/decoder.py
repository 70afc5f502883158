"""Type-directed conversion of one raw string into a slot.

Dispatch order for a found value, after every ``Ref``/``Optional`` layer has
been followed:

1. ``unmarshal_env`` hook on the leaf type
2. ``unmarshal_text`` hook, only when there is no ``unmarshal_env``
3. exact types: ``timedelta`` and ``datetime``
4. primitive kinds: ``bool``, ``int`` (with :class:`~pyenvtag.kinds.Bits`
   widths), ``float`` and ``str``, subclasses included
5. ``list[X]`` and ``tuple[X, ...]``, split on the separator
6. anything else is an :class:`~pyenvtag.errors.InvalidTypeError`

Hooks fill the instance they are called on, so hook types must be mutable;
a hook on a ``str`` or ``int`` subclass is rejected.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from .durations import parse_duration
from .errors import EnvError, InvalidTypeError, ParseError, RequirementError, type_name
from .kinds import (
    NATIVE_BITS,
    Ref,
    optional_target,
    ref_target,
    sequence_target,
    split_annotated,
    unwrap_newtype,
)
from .strconv import parse_bool, parse_float, parse_int, parse_uint
from .tags import TagOptions
from .timelayouts import parse_time


@runtime_checkable
class Unmarshaler(Protocol):
    """Types that decode themselves from a raw environment value."""

    def unmarshal_env(self, data: bytes) -> None: ...


@runtime_checkable
class TextUnmarshaler(Protocol):
    """Types that decode themselves from text."""

    def unmarshal_text(self, data: bytes) -> None: ...


# Matched by identity, before primitive kinds.
EXACT_TYPES: dict[type, Callable[[str], Any]] = {
    timedelta: parse_duration,
    datetime: parse_time,
}


class Slot:
    """A place a decoded value can be read from and written to."""

    name = "Value"
    settable = True

    def get(self) -> Any:
        raise NotImplementedError

    def set(self, value: Any) -> None:
        raise NotImplementedError


class FieldSlot(Slot):
    def __init__(self, obj: Any, name: str) -> None:
        self.obj = obj
        self.name = name
        params = getattr(type(obj), "__dataclass_params__", None)
        self.settable = not (params is not None and params.frozen)

    def get(self) -> Any:
        return getattr(self.obj, self.name, None)

    def set(self, value: Any) -> None:
        setattr(self.obj, self.name, value)


class RefSlot(Slot):
    def __init__(self, ref: Ref, name: str) -> None:
        self.ref = ref
        self.name = name

    def get(self) -> Any:
        return self.ref.value

    def set(self, value: Any) -> None:
        self.ref.value = value


class HolderSlot(Slot):
    """A free-standing slot, used for sequence elements and bare values."""

    def __init__(self, value: Any = None, name: str = "Value") -> None:
        self.value = value
        self.name = name

    def get(self) -> Any:
        return self.value

    def set(self, value: Any) -> None:
        self.value = value


def deref(slot: Slot, tp: Any) -> tuple[Slot, Any]:
    """Follow ``Ref`` and ``Optional`` layers down to the leaf slot.

    Empty references are allocated on the way.
    """

    while True:
        target = ref_target(tp)
        if target is not None:
            ref = slot.get()
            if not isinstance(ref, Ref):
                ref = Ref()
                slot.set(ref)
            slot, tp = RefSlot(ref, slot.name), target
            continue
        target = optional_target(tp)
        if target is not None:
            tp = target
            continue
        return slot, tp


def _hook_name(cls: type) -> str | None:
    if issubclass(cls, Unmarshaler):
        return "unmarshal_env"
    if issubclass(cls, TextUnmarshaler):
        return "unmarshal_text"
    return None


def _allocate(slot: Slot, cls: type, tp: Any) -> Any:
    current = slot.get()
    if isinstance(current, cls):
        return current
    try:
        return cls()
    except TypeError as exc:
        raise EnvError(f"env: cannot allocate {type_name(tp)}: {exc}") from exc


def _parse_primitive(cls: type, bits: Any, value: str) -> Any:
    if issubclass(cls, bool):
        return parse_bool(value)
    if issubclass(cls, int):
        size = bits.size if bits is not None else NATIVE_BITS
        if bits is not None and not bits.signed:
            return parse_uint(value, size)
        return parse_int(value, size)
    if issubclass(cls, float):
        return parse_float(value, bits.size if bits is not None else 64)
    return value


_PRIMITIVES = (bool, int, float, str)

# Hooks mutate the instance in place, which these types cannot support.
_IMMUTABLE = (int, float, complex, str, bytes, tuple, frozenset)


def decode_value(
    tag: TagOptions,
    tp: Any,
    slot: Slot,
    field: dataclasses.Field | None = None,
) -> None:
    """Decode ``tag.value`` as ``tp`` and store it in ``slot``."""

    if not slot.settable:
        raise EnvError(f"env: cannot set field '{slot.name}'")

    if not tag.found:
        if tag.required:
            raise RequirementError(tag.key, tp)
        return

    slot, tp = deref(slot, tp)
    base, bits = split_annotated(tp)

    def parse_error(exc: BaseException) -> ParseError:
        return ParseError(tag.key, tag.value, tp, exc)

    seq = sequence_target(base)
    cls = None if seq is not None else unwrap_newtype(base)

    if isinstance(cls, type):
        hook = _hook_name(cls)
        if hook is not None:
            if issubclass(cls, _IMMUTABLE):
                raise EnvError(
                    f"env: {type_name(tp)} defines {hook} but its instances "
                    "are immutable"
                )
            target = _allocate(slot, cls, tp)
            try:
                getattr(target, hook)(tag.value.encode())
            except Exception as exc:
                raise parse_error(exc) from exc
            slot.set(target)
            return

        parser = EXACT_TYPES.get(cls)
        if parser is not None:
            try:
                slot.set(parser(tag.value))
            except ValueError as exc:
                raise parse_error(exc) from exc
            return

        if issubclass(cls, _PRIMITIVES):
            try:
                parsed = _parse_primitive(cls, bits, tag.value)
                if base not in _PRIMITIVES:
                    parsed = base(parsed)
            except (ValueError, TypeError) as exc:
                raise parse_error(exc) from exc
            slot.set(parsed)
            return

    if seq is not None:
        container, elem_tp = seq
        if tag.sep == "":
            raise parse_error(ValueError("empty separator"))
        items = []
        for entry in tag.value.split(tag.sep):
            holder = HolderSlot(name=slot.name)
            try:
                decode_value(dataclasses.replace(tag, value=entry), elem_tp, holder, field)
            except EnvError as exc:
                raise parse_error(exc) from exc
            items.append(holder.value)
        slot.set(container(items))
        return

    raise InvalidTypeError(tag.key, tp, field)
