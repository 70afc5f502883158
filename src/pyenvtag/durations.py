"""Duration literals such as ``"1h30m"`` or ``"-1.5s"``."""

from __future__ import annotations

from datetime import timedelta

from .errors import DurationError

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,  # U+00B5 micro sign
    "μs": MICROSECOND,  # U+03BC Greek letter mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_MAX_NANOS = (1 << 63) - 1
_UNIT_STOP = set("0123456789.")


def _leading_digits(s: str) -> tuple[str, str]:
    i = 0
    while i < len(s) and "0" <= s[i] <= "9":
        i += 1
    return s[:i], s[i:]


def parse_duration_nanos(text: str) -> int:
    """Parse ``text`` into a signed nanosecond count."""

    orig = text
    s = text
    negative = False
    if s[:1] in ("-", "+"):
        negative = s[0] == "-"
        s = s[1:]
    if s == "0":
        return 0
    if not s:
        raise DurationError(f"invalid duration {orig!r}")

    total = 0
    while s:
        if not (s[0] == "." or "0" <= s[0] <= "9"):
            raise DurationError(f"invalid duration {orig!r}")
        whole, s = _leading_digits(s)
        frac = ""
        if s[:1] == ".":
            frac, s = _leading_digits(s[1:])
        if not whole and not frac:
            raise DurationError(f"invalid duration {orig!r}")

        i = 0
        while i < len(s) and s[i] not in _UNIT_STOP:
            i += 1
        if i == 0:
            raise DurationError(f"missing unit in duration {orig!r}")
        unit_name, s = s[:i], s[i:]
        unit = UNITS.get(unit_name)
        if unit is None:
            raise DurationError(
                f"unknown unit {unit_name!r} in duration {orig!r}"
            )

        try:
            nanos = int(whole or "0") * unit
            if frac:
                nanos += int(frac) * unit // 10 ** len(frac)
        except ValueError:
            # Past the interpreter's integer string conversion limit.
            raise DurationError(f"invalid duration {orig!r}") from None
        total += nanos
        if total > _MAX_NANOS + (1 if negative else 0):
            raise DurationError(f"invalid duration {orig!r}")

    return -total if negative else total


def parse_duration(text: str) -> timedelta:
    """Parse a duration literal into a :class:`~datetime.timedelta`.

    Sub-microsecond precision is rounded to the nearest microsecond.
    """

    micros, rem = divmod(parse_duration_nanos(text), MICROSECOND)
    if rem > MICROSECOND // 2 or (rem == MICROSECOND // 2 and micros % 2):
        micros += 1
    return timedelta(microseconds=micros)
