"""Elapsed time values used by test definitions and event logs.

Two integer nanosecond types with different wire forms:

- ``Duration`` serializes as a human readable string (``"5m0s"``, ``"1.5s"``)
  and is used for configuration fields.
- ``DurationMS`` serializes as milliseconds rounded to two decimals and is
  used for timestamps inside logs and result records.
"""

import math
import re
from datetime import timedelta
from typing import Any, Self

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

_UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,  # U+00B5 micro sign
    "μs": MICROSECOND,  # U+03BC greek small letter mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> int:
    """Parse a duration string such as ``"300ms"``, ``"-1.5h"`` or ``"2h45m"``.

    Args:
        text: Sequence of decimal numbers, each with optional fraction and a
            unit suffix, with an optional leading sign. ``"0"`` is accepted
            without a unit.

    Returns:
        The duration in nanoseconds. Fractional nanoseconds are truncated.

    Raises:
        ValueError: If the string is not a valid duration

    """
    rest = text
    sign = 1
    if rest and rest[0] in "+-":
        sign = -1 if rest[0] == "-" else 1
        rest = rest[1:]

    if rest == "0":
        return 0
    if not rest:
        raise ValueError(f"invalid duration {text!r}")

    total = 0
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ValueError(f"invalid duration {text!r}")

        scale = _UNITS[unit]
        total += int(whole or 0) * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
        pos = match.end()

    return sign * total


def _fraction(remainder: int, unit: int) -> str:
    if not remainder:
        return ""
    digits = len(str(unit)) - 1
    return "." + f"{remainder:0{digits}d}".rstrip("0")


def format_duration(nanoseconds: int) -> str:
    """Format nanoseconds as ``"72h3m0.5s"``.

    Durations under one second use a smaller unit (``"1.2ms"``) and the zero
    duration formats as ``"0s"``.
    """
    if nanoseconds == 0:
        return "0s"

    sign = "-" if nanoseconds < 0 else ""
    value = abs(nanoseconds)

    if value < SECOND:
        if value < MICROSECOND:
            return f"{sign}{value}ns"
        unit, suffix = (
            (MICROSECOND, "µs") if value < MILLISECOND else (MILLISECOND, "ms")
        )
        return f"{sign}{value // unit}{_fraction(value % unit, unit)}{suffix}"

    seconds, remainder = divmod(value, SECOND)
    text = f"{seconds % 60}{_fraction(remainder, SECOND)}s"
    minutes = seconds // 60
    if minutes:
        hours, minutes = divmod(minutes, 60)
        text = f"{minutes}m{text}"
        if hours:
            text = f"{hours}h{text}"
    return sign + text


class Duration(int):
    """Elapsed time in nanoseconds, serialized as a duration string."""

    @classmethod
    def from_seconds(cls, seconds: float) -> Self:
        """Create a duration from a number of seconds."""
        return cls(round(seconds * SECOND))

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> Self:
        """Create a duration from a timedelta (microsecond precision)."""
        return cls((delta // timedelta(microseconds=1)) * MICROSECOND)

    @classmethod
    def parse(cls, value: Any) -> Self:
        """Parse a duration string or a raw number of nanoseconds."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError("invalid duration")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("invalid duration")
            return cls(int(value))
        if isinstance(value, str):
            return cls(parse_duration(value))
        if isinstance(value, timedelta):
            return cls.from_timedelta(value)
        raise ValueError("invalid duration")

    def total_seconds(self) -> float:
        """Return the duration in seconds."""
        return self / SECOND

    def to_timedelta(self) -> timedelta:
        """Return the duration as a timedelta, truncated to microseconds."""
        return timedelta(microseconds=int(self) // MICROSECOND)

    def ms(self) -> "DurationMS":
        """Return the same duration with the millisecond wire form."""
        return DurationMS(self)

    def __str__(self) -> str:
        return format_duration(self)

    def __repr__(self) -> str:
        return f"Duration({format_duration(self)!r})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.plain_serializer_function_ser_schema(
                format_duration, when_used="json"
            ),
        )


class DurationMS(int):
    """Elapsed time in nanoseconds, serialized as fractional milliseconds."""

    @classmethod
    def from_milliseconds(cls, milliseconds: float) -> Self:
        """Create a duration from a number of milliseconds."""
        return cls(round(milliseconds * MILLISECOND))

    @classmethod
    def parse(cls, value: Any) -> Self:
        """Parse a number of milliseconds or a numeric string.

        Existing ``Duration``/``DurationMS`` values keep their nanoseconds.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, Duration):
            return cls(value)
        if isinstance(value, bool):
            raise ValueError("invalid duration")
        if isinstance(value, int):
            return cls.from_milliseconds(value)
        if isinstance(value, float | str):
            try:
                milliseconds = float(value)
            except ValueError as e:
                raise ValueError(f"invalid duration {value!r}") from e
            if not math.isfinite(milliseconds):
                raise ValueError(f"invalid duration {value!r}")
            return cls.from_milliseconds(milliseconds)
        raise ValueError("invalid duration")

    @property
    def milliseconds(self) -> float:
        """Milliseconds rounded to two decimal places."""
        return round(self / MILLISECOND, 2)

    def total_seconds(self) -> float:
        """Return the duration in seconds."""
        return self / SECOND

    def duration(self) -> Duration:
        """Return the same duration with the string wire form."""
        return Duration(self)

    def __repr__(self) -> str:
        return f"DurationMS({self.milliseconds!r})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda value: round(value / MILLISECOND, 2), when_used="json"
            ),
        )
