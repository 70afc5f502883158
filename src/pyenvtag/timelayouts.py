"""Timestamp parsing against a fixed list of reference layouts.

Layouts are written with the reference-time notation (``2006-01-02
15:04:05``): every element of the reference instant stands for the matching
field of the parsed value. Each layout is compiled into one regular
expression; :func:`parse_time` tries them in :data:`TIME_LAYOUTS` order and
returns the first match.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo

from .errors import TimeParseError

LAYOUT = "01/02 03:04:05PM '06 -0700"
ANSIC = "Mon Jan _2 15:04:05 2006"
UNIX_DATE = "Mon Jan _2 15:04:05 MST 2006"
RUBY_DATE = "Mon Jan 02 15:04:05 -0700 2006"
RFC822 = "02 Jan 06 15:04 MST"
RFC822Z = "02 Jan 06 15:04 -0700"
RFC850 = "Monday, 02-Jan-06 15:04:05 MST"
RFC1123 = "Mon, 02 Jan 2006 15:04:05 MST"
RFC1123Z = "Mon, 02 Jan 2006 15:04:05 -0700"
RFC3339 = "2006-01-02T15:04:05Z07:00"
RFC3339_NANO = "2006-01-02T15:04:05.999999999Z07:00"
STAMP = "Jan _2 15:04:05"
STAMP_MILLI = "Jan _2 15:04:05.000"
STAMP_MICRO = "Jan _2 15:04:05.000000"
STAMP_NANO = "Jan _2 15:04:05.000000000"
DATE_TIME = "2006-01-02 15:04:05"
DATE_ONLY = "2006-01-02"
TIME_ONLY = "15:04:05"
KITCHEN = "3:04PM"

# Order matters: the first layout that parses wins.
TIME_LAYOUTS: tuple[str, ...] = (
    LAYOUT,
    ANSIC,
    UNIX_DATE,
    RUBY_DATE,
    RFC822,
    RFC822Z,
    RFC850,
    RFC1123,
    RFC1123Z,
    RFC3339,
    RFC3339_NANO,
    STAMP,
    STAMP_MILLI,
    STAMP_MICRO,
    STAMP_NANO,
    DATE_TIME,
    DATE_ONLY,
    TIME_ONLY,
    KITCHEN,
)

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_LONG_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday",
              "Friday", "Saturday", "Sunday")

_CHUNK_RX = re.compile(
    r"Monday|Mon|Jan|2006|Z07:00|-0700|MST|PM|_2|01|02|03|04|05|06|15"
    r"|\.0+|\.9+|3"
)

_CHUNKS = {
    "Monday": r"(?i:%s)" % "|".join(_LONG_DAYS),
    "Mon": r"(?i:%s)" % "|".join(_DAYS),
    "Jan": r"(?P<month_name>(?i:%s))" % "|".join(_MONTHS),
    "2006": r"(?P<year>\d{4})",
    "06": r"(?P<year2>\d{2})",
    "01": r"(?P<month>\d{2})",
    "02": r"(?P<day>\d{2})",
    "_2": r"(?P<day> ?\d{1,2})",
    "15": r"(?P<hour>\d{1,2})",
    "03": r"(?P<hour12>\d{2})",
    "3": r"(?P<hour12>\d{1,2})",
    "04": r"(?P<minute>\d{2})",
    "05": r"(?P<second>\d{2})",
    "PM": r"(?P<ampm>AM|PM)",
    "MST": r"(?P<zone_name>ChST|MeST|GMT[+-]\d{1,2}|[A-Z]{3,4}T|[A-Z]{3}|[+-]\d{1,2})",
    "-0700": r"(?P<offset>[+-]\d{4})",
    "Z07:00": r"(?P<iso_offset>Z|[+-]\d{2}:\d{2})",
}

_IMPLICIT_FRACTION = r"(?:[.,](?P<fraction>\d+))?"


@dataclass(frozen=True)
class CompiledLayout:
    layout: str
    pattern: re.Pattern[str]


def compile_layout(layout: str) -> CompiledLayout:
    """Translate a reference layout into a regular expression."""

    parts: list[str] = []
    pos = 0
    chunks = list(_CHUNK_RX.finditer(layout))
    for idx, match in enumerate(chunks):
        parts.append(re.escape(layout[pos:match.start()]))
        chunk = match.group()
        if chunk.startswith(".0"):
            parts.append(r"[.,](?P<fraction>\d{%d})" % (len(chunk) - 1))
        elif chunk.startswith(".9"):
            parts.append(_IMPLICIT_FRACTION)
        else:
            parts.append(_CHUNKS[chunk])
            following = chunks[idx + 1].group() if idx + 1 < len(chunks) else ""
            adjacent = idx + 1 < len(chunks) and chunks[idx + 1].start() == match.end()
            if chunk == "05" and not (adjacent and following[:1] == "."):
                parts.append(_IMPLICIT_FRACTION)
        pos = match.end()
    parts.append(re.escape(layout[pos:]))
    return CompiledLayout(layout, re.compile("".join(parts)))


_COMPILED = tuple(compile_layout(layout) for layout in TIME_LAYOUTS)


def _local_zone(name: str) -> tzinfo | None:
    std, dst = time.tzname
    if name == std:
        return timezone(timedelta(seconds=-time.timezone), name)
    if name == dst and time.daylight:
        return timezone(timedelta(seconds=-time.altzone), name)
    return None


def _signed_hours(text: str) -> timedelta:
    hours = int(text[1:])
    if hours > 24:
        raise ValueError("zone offset out of range")
    return timedelta(hours=-hours if text[0] == "-" else hours)


def _zone_from_name(name: str) -> tzinfo:
    if name in ("UTC", "GMT"):
        return timezone.utc
    if name.startswith("GMT"):
        return timezone(_signed_hours(name[3:]), name)
    if name[0] in "+-":
        return timezone(_signed_hours(name))
    local = _local_zone(name)
    if local is not None:
        return local
    # Unknown abbreviation: keep the name, assume a zero offset.
    return timezone(timedelta(0), name)


def _zone_from_offset(text: str) -> tzinfo:
    if text == "Z":
        return timezone.utc
    digits = text[1:].replace(":", "")
    hours, minutes = int(digits[:2]), int(digits[2:])
    if hours > 24 or minutes > 59:
        raise ValueError("zone offset out of range")
    offset = timedelta(hours=hours, minutes=minutes)
    return timezone(-offset if text[0] == "-" else offset)


def _build(groups: dict[str, str | None]) -> datetime:
    year = 1
    if groups.get("year") is not None:
        year = int(groups["year"])
    elif groups.get("year2") is not None:
        short = int(groups["year2"])
        year = short + (1900 if short >= 69 else 2000)

    month = 1
    if groups.get("month") is not None:
        month = int(groups["month"])
    elif groups.get("month_name") is not None:
        month = [m.lower() for m in _MONTHS].index(groups["month_name"].lower()) + 1

    day = int(groups["day"].strip()) if groups.get("day") is not None else 1

    if groups.get("hour12") is not None:
        hour = int(groups["hour12"])
        if hour > 12:
            raise ValueError("hour out of range")
        ampm = groups.get("ampm")
        if ampm == "PM" and hour < 12:
            hour += 12
        elif ampm == "AM" and hour == 12:
            hour = 0
    else:
        hour = int(groups.get("hour") or 0)
    minute = int(groups.get("minute") or 0)
    second = int(groups.get("second") or 0)
    fraction = groups.get("fraction") or ""
    micro = int(fraction[:6].ljust(6, "0")) if fraction else 0

    if groups.get("zone_name") is not None:
        tz = _zone_from_name(groups["zone_name"])
    elif groups.get("offset") is not None:
        tz = _zone_from_offset(groups["offset"])
    elif groups.get("iso_offset") is not None:
        tz = _zone_from_offset(groups["iso_offset"])
    else:
        tz = timezone.utc

    return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)


def parse_layout(layout: CompiledLayout | str, value: str) -> datetime:
    """Parse ``value`` with a single layout."""

    if isinstance(layout, str):
        layout = compile_layout(layout)
    match = layout.pattern.fullmatch(value)
    if match is None:
        raise TimeParseError(
            f"parsing time {value!r} as {layout.layout!r}: cannot parse"
        )
    try:
        return _build(match.groupdict())
    except ValueError as exc:
        raise TimeParseError(f"parsing time {value!r}: {exc}") from exc


def parse_time(value: str) -> datetime:
    """Parse ``value`` with the first layout in :data:`TIME_LAYOUTS` that fits.

    The result is always timezone-aware; layouts without a zone yield UTC.
    When nothing matches, the error from the last layout is raised.
    """

    error: TimeParseError | None = None
    for layout in _COMPILED:
        try:
            return parse_layout(layout, value)
        except TimeParseError as exc:
            error = exc
    assert error is not None
    raise error
