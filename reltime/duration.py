"""Duration expressions such as "5min", "1.5h" or "3 days 4 hours".

A duration is one or more ``<number>[.<fraction>]<unit>`` terms, optionally
separated by whitespace, whose values are summed. The result is an unsigned
count of microseconds.
"""

import re
from collections.abc import Sequence
from typing import NamedTuple

from reltime.errors import InvalidSyntax, OutOfRange, UnknownUnit
from reltime.util import (
    USEC_MAX,
    USEC_PER_DAY,
    USEC_PER_HOUR,
    USEC_PER_MINUTE,
    USEC_PER_MONTH,
    USEC_PER_MSEC,
    USEC_PER_SEC,
    USEC_PER_USEC,
    USEC_PER_WEEK,
    USEC_PER_YEAR,
)

WHITESPACE = " \t\n\r"

# Integers are read with the range of a signed 64-bit conversion
INT64_MAX = 2**63 - 1

_NUMBER = re.compile(r"([+-]?)([0-9]*)")


class Unit(NamedTuple):
    suffix: str
    usec: int


# Matched by literal prefix, first hit wins. A suffix must come before any
# shorter suffix that is a prefix of it ("seconds" before "s", "msec" before
# "m"), and the empty suffix (bare number = seconds) must be last.
UNITS: tuple[Unit, ...] = (
    Unit("seconds", USEC_PER_SEC),
    Unit("second", USEC_PER_SEC),
    Unit("sec", USEC_PER_SEC),
    Unit("s", USEC_PER_SEC),
    Unit("minutes", USEC_PER_MINUTE),
    Unit("minute", USEC_PER_MINUTE),
    Unit("min", USEC_PER_MINUTE),
    Unit("months", USEC_PER_MONTH),
    Unit("month", USEC_PER_MONTH),
    Unit("msec", USEC_PER_MSEC),
    Unit("ms", USEC_PER_MSEC),
    Unit("m", USEC_PER_MINUTE),
    Unit("hours", USEC_PER_HOUR),
    Unit("hour", USEC_PER_HOUR),
    Unit("hr", USEC_PER_HOUR),
    Unit("h", USEC_PER_HOUR),
    Unit("days", USEC_PER_DAY),
    Unit("day", USEC_PER_DAY),
    Unit("d", USEC_PER_DAY),
    Unit("weeks", USEC_PER_WEEK),
    Unit("week", USEC_PER_WEEK),
    Unit("w", USEC_PER_WEEK),
    Unit("years", USEC_PER_YEAR),
    Unit("year", USEC_PER_YEAR),
    Unit("y", USEC_PER_YEAR),
    Unit("usec", USEC_PER_USEC),
    Unit("us", USEC_PER_USEC),
    Unit("", USEC_PER_SEC),
)


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in WHITESPACE:
        pos += 1
    return pos


def _read_digits(text: str, pos: int) -> tuple[int, int, int]:
    """Read an unsigned decimal run at `pos`.

    Returns:
        (value, digit_count, end_position)
    """
    match = _NUMBER.match(text, pos)
    assert match is not None  # every part of the pattern is optional
    sign, digits = match.groups()

    if not digits:
        raise InvalidSyntax(
            f"Expected a number at position {pos} of {text!r}.\n"
            f"Example: '5min', '1.5h', '3 days 4 hours'"
        )
    if sign == "-":
        raise OutOfRange(
            f"Negative value {sign}{digits} in {text!r}.\n"
            f"Durations are unsigned magnitudes."
        )
    if sign == "+":
        raise InvalidSyntax(
            f"Unexpected sign before {digits} in {text!r}.\n"
            f"Durations take no sign inside the expression."
        )

    value = int(digits)
    if value > INT64_MAX:
        raise OutOfRange(f"Number {digits} in {text!r} is too large.")
    return value, len(digits), match.end()


class DurationParser:
    """Parse duration expressions into microseconds using an ordered unit table."""

    def __init__(self, units: Sequence[Unit] = UNITS):
        """
        Initialize a duration parser.

        Args:
            units: Ordered (suffix, microseconds) table. The first suffix that
                is a prefix of the text after a number wins.

        Raises:
            ValueError: If an entry can never match because an earlier
                suffix is a prefix of it
        """
        self.units: tuple[Unit, ...] = tuple(Unit(*unit) for unit in units)

        for i, earlier in enumerate(self.units):
            for later in self.units[i + 1 :]:
                if later.suffix.startswith(earlier.suffix):
                    raise ValueError(
                        f"Unit suffix {later.suffix!r} is shadowed by "
                        f"{earlier.suffix!r}, which is listed before it.\n"
                        f"Fix: list longer suffixes before their prefixes."
                    )

    def _match_unit(self, text: str, pos: int) -> Unit:
        for unit in self.units:
            if text.startswith(unit.suffix, pos):
                return unit
        known = ", ".join(repr(unit.suffix) for unit in self.units)
        raise UnknownUnit(
            f"Unrecognized unit {text[pos:]!r} in {text!r}.\n" f"Known units: {known}"
        )

    def parse(self, text: str) -> int:
        """Return the total of all terms in `text` in microseconds.

        Raises:
            InvalidSyntax: If the text is empty or a number is malformed
            OutOfRange: If a number is negative or the total overflows
            UnknownUnit: If no unit suffix matches after a number
        """
        total = 0
        pos = 0
        something = False

        while True:
            pos = _skip_whitespace(text, pos)
            if pos >= len(text):
                if not something:
                    raise InvalidSyntax(
                        f"Empty duration {text!r}.\n"
                        f"Example: '5min', '1.5h', '3 days 4 hours'"
                    )
                return total

            whole, _, pos = _read_digits(text, pos)

            fraction, digits = 0, 0
            if text.startswith(".", pos):
                fraction, digits, pos = _read_digits(text, pos + 1)

            pos = _skip_whitespace(text, pos)
            unit = self._match_unit(text, pos)

            total += whole * unit.usec + (fraction * unit.usec) // 10**digits
            if total > USEC_MAX:
                raise OutOfRange(
                    f"Duration {text!r} overflows {USEC_MAX} microseconds."
                )

            pos += len(unit.suffix)
            something = True


_default_parser = DurationParser()


def parse_duration(text: str, *, units: Sequence[Unit] | None = None) -> int:
    """
    Parse a duration expression into microseconds.

    Args:
        text: One or more ``<number>[.<fraction>]<unit>`` terms; a bare
            number means seconds
        units: Optional replacement for the default unit table

    Returns:
        Total duration in microseconds

    Example:
        >>> parse_duration("1.5h")
        5400000000
        >>> parse_duration("1m 30s")
        90000000
    """
    parser = _default_parser if units is None else DurationParser(units)
    return parser.parse(text)
