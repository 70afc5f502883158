"""Field tag resolution.

A tag is the ``env`` entry of a dataclass field's metadata::

    @dataclass
    class Settings:
        project: str = env_field("PROJECT_NAME", required=True)
        path: list[str] = field(default_factory=list, metadata={"env": "PATH,sep=:"})

Fields without a tag use their name converted to screaming snake case.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from .errors import InvalidTagOptionError

TAG_NAME = "env"
DEFAULT_SEPARATOR = ","

Lookup = Callable[[str], tuple[str, bool]]


@dataclass
class TagOptions:
    """Resolved decoding options for one field."""

    key: str
    value: str = ""
    found: bool = False
    required: bool = False
    sep: str = DEFAULT_SEPARATOR


UnmarshalOption = Callable[[TagOptions], None]


def separator(sep: str) -> UnmarshalOption:
    """Return an option setting the default list separator.

    This is the only way to pick a separator for :class:`~pyenvtag.Value`
    decoding, since a bare value has no tag.
    """

    def apply(tag: TagOptions) -> None:
        tag.sep = sep

    return apply


def required() -> UnmarshalOption:
    """Return an option marking every field as required."""

    def apply(tag: TagOptions) -> None:
        tag.required = True

    return apply


def apply_options(tag: TagOptions, opts: Iterable[UnmarshalOption]) -> TagOptions:
    for opt in opts:
        opt(tag)
    return tag


def to_screaming_snake(name: str) -> str:
    """Convert ``ProjectName`` to ``PROJECT_NAME``.

    Only lower-to-upper transitions get an underscore, so runs of capitals are
    kept together (``HTTPServer`` becomes ``HTTPSERVER``).
    """

    out: list[str] = []
    prev_lower = False
    for ch in name:
        if prev_lower and ch.isupper():
            out.append("_")
        prev_lower = ch.islower()
        out.append(ch)
    return "".join(out).upper()


def env_field(
    key: str | None = None,
    *,
    required: bool = False,
    sep: str | None = None,
    **kwargs: Any,
) -> Any:
    """Build a :func:`dataclasses.field` carrying an ``env`` tag.

    Extra keyword arguments (``default``, ``default_factory`` ...) are passed
    through to :func:`dataclasses.field`.
    """

    if key is None and (required or sep is not None):
        raise ValueError("env_field options need an explicit key")
    metadata = dict(kwargs.pop("metadata", None) or {})
    if key is not None:
        parts = [key]
        if required:
            parts.append("required")
        if sep is not None:
            parts.append(f"sep={sep}")
        metadata[TAG_NAME] = ",".join(parts)
    return dataclasses.field(metadata=metadata, **kwargs)


def read_tag(
    lookup: Lookup,
    name: str,
    type: Any,
    tag: str | None,
    *opts: UnmarshalOption,
    field: dataclasses.Field | None = None,
) -> TagOptions:
    """Resolve the key, raw value and options for one field.

    ``lookup`` is called exactly once. Options in ``opts`` are applied before
    the tag's own tokens, so the tag wins on conflict.
    """

    if tag is None:
        tag = to_screaming_snake(name)
    key, *tokens = tag.split(",")

    value, found = lookup(key)
    options = apply_options(TagOptions(key=key, value=value, found=found), opts)
    for token in tokens:
        if token == "required":
            options.required = True
        elif token.startswith("sep="):
            options.sep = token[len("sep="):]
        else:
            raise InvalidTagOptionError(key, token, type, field)
    return options
