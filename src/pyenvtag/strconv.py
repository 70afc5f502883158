"""Numeric and boolean literal parsing.

The accepted grammar is stricter than :func:`int` and :func:`float`: ASCII
digits only, no surrounding whitespace, and ``_`` separators only between
digits (or straight after a base prefix).
"""

from __future__ import annotations

import math
import re
import struct

from .errors import NumError

ERR_SYNTAX = "invalid syntax"
ERR_RANGE = "value out of range"

_DIGITS = {
    2: re.compile(r"[01_]+"),
    8: re.compile(r"[0-7_]+"),
    10: re.compile(r"[0-9_]+"),
    16: re.compile(r"[0-9a-fA-F_]+"),
}
_PREFIXES = {"0x": 16, "0o": 8, "0b": 2}

_DEC_FLOAT = re.compile(
    r"(?:[0-9](?:_?[0-9])*(?:\.(?:[0-9](?:_?[0-9])*)?)?|\.[0-9](?:_?[0-9])*)"
    r"(?:[eE][+-]?[0-9](?:_?[0-9])*)?"
)
_HEX_FLOAT = re.compile(
    r"0[xX]_?(?:[0-9a-fA-F](?:_?[0-9a-fA-F])*(?:\.(?:[0-9a-fA-F](?:_?[0-9a-fA-F])*)?)?"
    r"|\.[0-9a-fA-F](?:_?[0-9a-fA-F])*)[pP][+-]?[0-9](?:_?[0-9])*"
)
_SPECIAL_FLOATS = {"inf": math.inf, "infinity": math.inf, "nan": math.nan}

_FLOAT32_MAX = struct.unpack("<f", b"\xff\xff\x7f\x7f")[0]

TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _underscore_ok(digits: str, prefixed: bool) -> bool:
    # "_" must follow a digit or a base prefix and be followed by a digit.
    prev = "0" if prefixed else "^"
    for ch in digits:
        if ch == "_" and prev in ("_", "^"):
            return False
        prev = ch
    return prev != "_"


def _parse_magnitude(func: str, text: str) -> tuple[bool, int]:
    s = text
    negative = False
    if s[:1] in ("+", "-"):
        negative = s[0] == "-"
        s = s[1:]
    if not s:
        raise NumError(func, text, ERR_SYNTAX)

    base = 10
    prefixed = False
    lowered = s[:2].lower()
    if lowered in _PREFIXES and len(s) > 2:
        base = _PREFIXES[lowered]
        s = s[2:]
        prefixed = True
    elif s[0] == "0" and len(s) > 1:
        # Legacy octal: a bare leading zero.
        base = 8
        s = s[1:]
        prefixed = True

    if not _DIGITS[base].fullmatch(s) or not _underscore_ok(s, prefixed):
        raise NumError(func, text, ERR_SYNTAX)
    digits = s.replace("_", "")
    if not digits:
        raise NumError(func, text, ERR_SYNTAX)
    try:
        return negative, int(digits, base)
    except ValueError:
        # Past the interpreter's integer string conversion limit.
        raise NumError(func, text, ERR_RANGE) from None


def parse_int(text: str, bits: int = 64) -> int:
    """Parse a signed integer that must fit in ``bits`` bits."""

    func = "parse_int"
    negative, magnitude = _parse_magnitude(func, text)
    value = -magnitude if negative else magnitude
    lo, hi = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    if not lo <= value <= hi:
        raise NumError(func, text, ERR_RANGE)
    return value


def parse_uint(text: str, bits: int = 64) -> int:
    """Parse an unsigned integer that must fit in ``bits`` bits."""

    func = "parse_uint"
    if text[:1] in ("+", "-"):
        raise NumError(func, text, ERR_SYNTAX)
    _, value = _parse_magnitude(func, text)
    if value >= 1 << bits:
        raise NumError(func, text, ERR_RANGE)
    return value


def _to_float32(func: str, text: str, value: float) -> float:
    if math.isfinite(value) and abs(value) > _FLOAT32_MAX:
        raise NumError(func, text, ERR_RANGE)
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        # Rounds up past the largest finite float32.
        raise NumError(func, text, ERR_RANGE) from None


def parse_float(text: str, bits: int = 64) -> float:
    """Parse a floating point literal at 32 or 64 bit precision."""

    func = "parse_float"
    s = text
    sign = 1.0
    if s[:1] in ("+", "-"):
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]

    special = _SPECIAL_FLOATS.get(s.lower())
    if special is not None:
        value = math.copysign(special, sign) if not math.isnan(special) else special
    elif _DEC_FLOAT.fullmatch(s):
        value = sign * float(s.replace("_", ""))
    elif _HEX_FLOAT.fullmatch(s):
        value = sign * float.fromhex(s.replace("_", ""))
    else:
        raise NumError(func, text, ERR_SYNTAX)

    if math.isinf(value) and special is None:
        raise NumError(func, text, ERR_RANGE)
    if bits == 32:
        return _to_float32(func, text, value)
    return value


def parse_bool(text: str) -> bool:
    """Parse one of the accepted boolean words."""

    if text in TRUE_WORDS:
        return True
    if text in FALSE_WORDS:
        return False
    raise NumError("parse_bool", text, ERR_SYNTAX)
