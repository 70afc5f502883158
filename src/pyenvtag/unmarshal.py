from __future__ import annotations

import dataclasses
import logging
import os
import sys
import types
import typing
from typing import Any, TypeVar

from .decoder import FieldSlot, HolderSlot, decode_value
from .errors import EnvError, InvalidTypeError, RequirementError
from .kinds import Ref
from .tags import TAG_NAME, Lookup, TagOptions, UnmarshalOption, apply_options, read_tag

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


def lookup_env(key: str) -> tuple[str, bool]:
    """Look ``key`` up in the live process environment."""

    value = os.environ.get(key)
    if value is None:
        return "", False
    return value, True


def unmarshal(out: Any, *opts: UnmarshalOption) -> None:
    """Populate the dataclass instance ``out`` from the process environment.

    Each field is read from the variable named by its ``env`` tag, or by its
    name in screaming snake case when there is no tag. Fields whose variable
    is unset keep their current value, so dataclass defaults act as
    fallbacks. ``out=None`` does nothing.

    Raises :class:`~pyenvtag.errors.RequirementError`,
    :class:`~pyenvtag.errors.ParseError`,
    :class:`~pyenvtag.errors.InvalidTypeError` or
    :class:`~pyenvtag.errors.InvalidTagOptionError`. Fields decoded before the
    failing one keep their new values.
    """

    if out is None:
        return
    decode(lookup_env, out, *opts)


def decode(lookup: Lookup, out: Any, *opts: UnmarshalOption) -> None:
    """Populate ``out`` using ``lookup`` to resolve variables.

    ``out`` is a dataclass instance or a chain of :class:`~pyenvtag.Ref`
    cells ending in one.
    """

    while isinstance(out, Ref):
        if out.value is None:
            raise EnvError("env: cannot unmarshal into nil reference")
        out = out.value
    decode_struct(lookup, out, *opts)


def _field_type(cls: type, field: dataclasses.Field) -> Any:
    """Resolve the annotation of one field.

    Annotations that cannot be resolved (names only imported under
    ``TYPE_CHECKING``) are returned as written; such a field only fails if
    its variable is set.
    """

    if not isinstance(field.type, str):
        return field.type
    owner = next(
        (base for base in cls.__mro__ if field.name in base.__dict__.get("__annotations__", {})),
        cls,
    )
    module = sys.modules.get(owner.__module__)
    namespace = {**vars(owner), **(vars(module) if module is not None else {})}
    holder = types.SimpleNamespace(__annotations__={field.name: field.type})
    try:
        hints = typing.get_type_hints(holder, globalns=namespace, include_extras=True)
    except NameError as exc:
        logger.debug("field %s.%s: unresolved annotation: %s", cls.__qualname__, field.name, exc)
        return field.type
    return hints[field.name]


def decode_struct(lookup: Lookup, out: Any, *opts: UnmarshalOption) -> None:
    """Walk the fields of ``out`` in declaration order."""

    if not dataclasses.is_dataclass(out) or isinstance(out, type):
        raise InvalidTypeError("", type(out) if not isinstance(out, type) else out)

    for field in dataclasses.fields(out):
        if field.name.startswith("_"):
            continue
        field_type = _field_type(type(out), field)
        tag = read_tag(
            lookup,
            field.name,
            field_type,
            field.metadata.get(TAG_NAME),
            *opts,
            field=field,
        )
        logger.debug(
            "field %s.%s: key %s %s",
            type(out).__qualname__,
            field.name,
            tag.key,
            "found" if tag.found else "not set",
        )
        decode_value(tag, field_type, FieldSlot(out, field.name), field)


def decode_as(value: str, tp: Any, *opts: UnmarshalOption, key: str = "Value") -> Any:
    """Decode a single raw ``value`` as ``tp`` and return the result."""

    tag = apply_options(TagOptions(key=key, value=value, found=True), opts)
    holder = HolderSlot(name=key)
    decode_value(tag, tp, holder)
    return holder.value


def get(name: str, type_: Any = str, *opts: UnmarshalOption) -> Any:
    """Return variable ``name`` decoded as ``type_``.

    A missing variable raises :class:`~pyenvtag.errors.RequirementError`.
    """

    value, found = lookup_env(name)
    if not found:
        raise RequirementError(name, type_)
    return decode_as(value, type_, *opts, key=name)


def get_or(name: str, fallback: T, type_: Any = _MISSING, *opts: UnmarshalOption) -> T:
    """Return variable ``name`` decoded as ``type_``, or ``fallback`` if unset.

    ``type_`` defaults to the type of ``fallback``.
    """

    value, found = lookup_env(name)
    if not found:
        return fallback
    if type_ is _MISSING:
        type_ = type(fallback)
    return decode_as(value, type_, *opts, key=name)
