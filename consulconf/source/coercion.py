"""
consulconf - Value Coercion

Pure string -> typed value conversions shared by every source. One table maps
each ValueKind to its parser and zero value, so sources expose a dozen typed
getters through a single get(key, kind) path.

Rules:
- Integers parse as the widest signed/unsigned value first, then wrap to the
  requested width with two's-complement truncation ("1234" as int8 is -46).
- An integer target also accepts a float literal, truncated toward zero.
- float32 values are rounded to single precision.
- Durations use Go-style strings ("5m3s", "12h", "300ms").
- Timestamps without an offset are UTC.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

import numpy as np


class ValueKind(str, Enum):
    """Target type of a lookup. The value is the name of the matching getter."""

    STRING = "get_string"
    STRING_LIST = "get_string_list"
    INT = "get_int"
    INT8 = "get_int8"
    INT16 = "get_int16"
    INT32 = "get_int32"
    INT64 = "get_int64"
    UINT = "get_uint"
    UINT8 = "get_uint8"
    UINT16 = "get_uint16"
    UINT32 = "get_uint32"
    UINT64 = "get_uint64"
    FLOAT32 = "get_float32"
    FLOAT64 = "get_float64"
    BOOL = "get_bool"
    DURATION = "get_duration"
    TIME = "get_time"

    @property
    def accessor(self) -> str:
        """Name of the typed getter serving this kind."""
        return self.value


ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

# Integer kinds -> numpy dtype describing width and signedness
_INTEGER_TYPES: dict[ValueKind, type[np.integer[Any]]] = {
    ValueKind.INT: np.int64,
    ValueKind.INT8: np.int8,
    ValueKind.INT16: np.int16,
    ValueKind.INT32: np.int32,
    ValueKind.INT64: np.int64,
    ValueKind.UINT: np.uint64,
    ValueKind.UINT8: np.uint8,
    ValueKind.UINT16: np.uint16,
    ValueKind.UINT32: np.uint32,
    ValueKind.UINT64: np.uint64,
}

_INT_PATTERN = re.compile(r"^[+-]?\d+$")
_FLOAT_PATTERN = re.compile(
    r"^[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)$",
    re.IGNORECASE,
)
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_TIMESTAMP_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})"
    r"(?:[T ](\d{2}):(\d{2})(?::(\d{2})(?:\.(\d+))?)?)?"
    r"(Z|[+-]\d{2}:?\d{2})?$",
    re.IGNORECASE,
)

_NANOS_PER_UNIT: dict[str, int] = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_STRINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


# =============================================================================
# Parsers (raise ValueError on bad input)
# =============================================================================


def parse_string_list(text: str) -> list[str]:
    """Split a comma separated list, trimming items and dropping blanks."""
    return [item.strip() for item in text.split(",") if item.strip()]


def parse_float(text: str) -> float:
    """Parse a decimal or scientific float literal."""
    if not _FLOAT_PATTERN.match(text):
        raise ValueError(f"invalid float: {text!r}")
    return float(text)


def parse_integer(text: str) -> int:
    """Parse an integer literal, accepting finite floats truncated toward zero."""
    if _INT_PATTERN.match(text):
        return int(text)
    number = parse_float(text)
    if not math.isfinite(number):
        raise ValueError(f"invalid integer: {text!r}")
    return int(number)


def truncate_integer(value: int, bits: int, signed: bool) -> int:
    """Keep the low `bits` bits of value, read back as signed or unsigned.

    Args:
        value: Arbitrary precision integer
        bits: Target width
        signed: Whether to reinterpret the top bit as a sign bit

    Returns:
        The wrapped value, e.g. truncate_integer(1234, 8, True) == -46
    """
    masked = value & ((1 << bits) - 1)
    if signed and masked >= 1 << (bits - 1):
        masked -= 1 << bits
    return masked


def parse_bool(text: str) -> bool:
    """Parse the boolean spellings accepted by Consul tooling."""
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"invalid bool: {text!r}")


def parse_duration(text: str) -> timedelta:
    """Parse a Go-style duration such as "1h15m", "5m3s" or "-1.5s".

    Nanosecond precision is truncated to microseconds.
    """
    body = text
    negative = False
    if body and body[0] in "+-":
        negative = body[0] == "-"
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f"invalid duration: {text!r}")

    total = Decimal(0)
    position = 0
    while position < len(body):
        match = _DURATION_PART.match(body, position)
        if match is None:
            raise ValueError(f"invalid duration: {text!r}")
        try:
            amount = Decimal(match.group(1))
        except InvalidOperation as e:
            raise ValueError(f"invalid duration: {text!r}") from e
        total += amount * _NANOS_PER_UNIT[match.group(2)]
        position = match.end()

    micros = int(total) // 1000
    if negative:
        micros = -micros
    try:
        return timedelta(microseconds=micros)
    except OverflowError as e:
        raise ValueError(f"duration out of range: {text!r}") from e


def parse_time(text: str) -> datetime:
    """Parse an ISO date or RFC 3339 timestamp into an aware datetime."""
    match = _TIMESTAMP_PATTERN.match(text)
    if match is None:
        raise ValueError(f"invalid time: {text!r}")
    year, month, day, hour, minute, second, fraction, offset = match.groups()

    tz = timezone.utc
    if offset and offset.upper() != "Z":
        digits = offset[1:].replace(":", "")
        delta = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
        tz = timezone(-delta if offset[0] == "-" else delta)

    microsecond = int((fraction or "").ljust(6, "0")[:6])
    return datetime(
        int(year),
        int(month),
        int(day),
        int(hour or 0),
        int(minute or 0),
        int(second or 0),
        microsecond,
        tzinfo=tz,
    )


# =============================================================================
# Kind table
# =============================================================================


def _integer_parser(kind: ValueKind) -> Callable[[str], int]:
    info = np.iinfo(_INTEGER_TYPES[kind])
    signed = int(info.min) < 0

    def parse(text: str) -> int:
        return truncate_integer(parse_integer(text), info.bits, signed)

    return parse


def _parse_float32(text: str) -> float:
    with np.errstate(over="ignore"):
        return float(np.float32(parse_float(text)))


_PARSERS: dict[ValueKind, Callable[[str], Any]] = {
    ValueKind.STRING: str,
    ValueKind.STRING_LIST: parse_string_list,
    ValueKind.FLOAT32: _parse_float32,
    ValueKind.FLOAT64: parse_float,
    ValueKind.BOOL: parse_bool,
    ValueKind.DURATION: parse_duration,
    ValueKind.TIME: parse_time,
    **{kind: _integer_parser(kind) for kind in _INTEGER_TYPES},
}


def zero(kind: ValueKind) -> Any:
    """Zero value returned for a miss or a value that fails to parse."""
    if kind is ValueKind.STRING:
        return ""
    if kind is ValueKind.STRING_LIST:
        return []
    if kind in (ValueKind.FLOAT32, ValueKind.FLOAT64):
        return 0.0
    if kind is ValueKind.BOOL:
        return False
    if kind is ValueKind.DURATION:
        return timedelta(0)
    if kind is ValueKind.TIME:
        return ZERO_TIME
    return 0


def coerce(raw: str, kind: ValueKind) -> tuple[Any, bool]:
    """Trim a raw stored value and convert it to kind.

    Args:
        raw: Value as stored, surrounding whitespace included
        kind: Target type

    Returns:
        (value, True) on success, (zero(kind), False) when the value does not parse
    """
    try:
        return _PARSERS[kind](raw.strip()), True
    except (ValueError, OverflowError):
        return zero(kind), False
