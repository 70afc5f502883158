"""Decode environment variables into typed dataclasses.

Like :mod:`json` for the environment: fields are mapped to variables through
``env`` tags and decoded by their annotations.
"""

from .decoder import TextUnmarshaler, Unmarshaler
from .durations import parse_duration
from .environment import Environment
from .errors import (
    EnvError,
    InvalidTagOptionError,
    InvalidTypeError,
    ParseError,
    RequirementError,
)
from .kinds import (
    Bits,
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    Ref,
    UInt,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)
from .tags import TagOptions, env_field, required, separator, to_screaming_snake
from .timelayouts import TIME_LAYOUTS, parse_time
from .unmarshal import decode, get, get_or, unmarshal
from .value import Value

__all__ = [
    "unmarshal",
    "decode",
    "get",
    "get_or",
    "env_field",
    "separator",
    "required",
    "to_screaming_snake",
    "TagOptions",
    "Environment",
    "Value",
    "Ref",
    "Bits",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "UInt",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "Float32",
    "Float64",
    "Unmarshaler",
    "TextUnmarshaler",
    "parse_duration",
    "parse_time",
    "TIME_LAYOUTS",
    "EnvError",
    "InvalidTagOptionError",
    "InvalidTypeError",
    "ParseError",
    "RequirementError",
]
