from __future__ import annotations

from dataclasses import Field
from typing import Any


def type_name(tp: Any) -> str:
    """Return a readable name for a type annotation."""

    if isinstance(tp, type):
        if tp.__module__ == "builtins":
            return tp.__qualname__
        return f"{tp.__module__}.{tp.__qualname__}"
    return repr(tp).replace("typing.", "")


class EnvError(Exception):
    """Base class for pyenvtag errors."""


class InvalidTagOptionError(EnvError):
    """Raised when a field tag carries an unknown option."""

    def __init__(
        self, key: str, option: str, type: Any, field: Field | None = None
    ) -> None:
        self.key = key
        self.option = option
        self.type = type
        self.field = field
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.field is None:
            return (
                f"env: invalid tag option '{self.option}' "
                f"for env variable '{self.key}'"
            )
        return f"env: invalid tag option '{self.option}' on field '{self.field.name}'"


class InvalidTypeError(EnvError):
    """Raised when a target type cannot be decoded."""

    def __init__(self, key: str, type: Any, field: Field | None = None) -> None:
        self.key = key
        self.type = type
        self.field = field
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            f"env: invalid type '{type_name(self.type)}' "
            f"for env variable '{self.key}'"
        )


class ParseError(EnvError):
    """Raised when a value cannot be converted to its target type.

    ``error`` holds the underlying failure; it is also chained as
    ``__cause__``.
    """

    def __init__(self, key: str, value: str, type: Any, error: BaseException) -> None:
        self.key = key
        self.value = value
        self.type = type
        self.error = error
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            f"env: unable to parse env variable '{self.key}' "
            f"as {type_name(self.type)}: {self.error}"
        )


class RequirementError(EnvError):
    """Raised when a required variable is missing."""

    def __init__(self, key: str, type: Any) -> None:
        self.key = key
        self.type = type
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"env: missing required env value '{self.key}'"


class NumError(ValueError):
    """Raised by the numeric and boolean parsers."""

    def __init__(self, func: str, text: str, reason: str) -> None:
        self.func = func
        self.text = text
        self.reason = reason
        super().__init__(f"{func}: parsing {text!r}: {reason}")


class DurationError(ValueError):
    """Raised when a duration literal is malformed."""


class TimeParseError(ValueError):
    """Raised when a timestamp matches none of the known layouts."""
