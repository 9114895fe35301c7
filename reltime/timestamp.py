"""Resolve absolute and relative timestamp expressions to instants.

Accepted forms, with `now` supplied by the caller:

    now
    today                 (time set to 00:00:00)
    yesterday             (time set to 00:00:00)
    tomorrow              (time set to 00:00:00)
    +5min                 (now plus a duration)
    -5days                (now minus a duration, never below the epoch)
    3 hours ago           (same as -3hours)
    2012-09-22 16:34:22
    2012-09-22 16:34      (seconds set to 0)
    2012-09-22            (time set to 00:00:00)
    16:34:22              (date set to today)
    16:34                 (date set to today, seconds set to 0)
    20120922163422        (seconds set to 0)

Any absolute form may start with a weekday name and a space
("Sat 2012-09-22"); the date must then fall on that weekday.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import NamedTuple

from reltime.broken_down import BrokenDownTime, decompose, normalize
from reltime.duration import DurationParser
from reltime.errors import (
    AllocationFailure,
    OutOfRange,
    UnknownFormat,
    WeekdayMismatch,
)
from reltime.util import USEC_MAX, USEC_PER_SEC, saturating_sub

logger = logging.getLogger(__name__)

AGO_SUFFIX = " ago"


def _strip_ago(text: str) -> str:
    return text[: -len(AGO_SUFFIX)]


class Weekday(NamedTuple):
    name: str
    number: int  # 0 = Sunday


# Matched case-insensitively as a prefix followed by a single space.
# Full names come before their abbreviations.
WEEKDAYS: tuple[Weekday, ...] = (
    Weekday("Sunday", 0),
    Weekday("Sun", 0),
    Weekday("Monday", 1),
    Weekday("Mon", 1),
    Weekday("Tuesday", 2),
    Weekday("Tue", 2),
    Weekday("Wednesday", 3),
    Weekday("Wed", 3),
    Weekday("Thursday", 4),
    Weekday("Thu", 4),
    Weekday("Friday", 5),
    Weekday("Fri", 5),
    Weekday("Saturday", 6),
    Weekday("Sat", 6),
)


class _Field(NamedTuple):
    width: int
    low: int
    high: int


# strptime-style numeric fields. Each reads up to `width` digits greedily,
# after optional whitespace, and is range-checked once the text has matched.
_DIRECTIVES: dict[str, _Field] = {
    "y": _Field(2, 0, 99),
    "Y": _Field(4, 0, 9999),
    "m": _Field(2, 1, 12),
    "d": _Field(2, 1, 31),
    "H": _Field(2, 0, 23),
    "M": _Field(2, 0, 59),
    "S": _Field(2, 0, 61),
}


def _compile(fmt: str) -> re.Pattern[str]:
    parts: list[str] = []
    chars = iter(fmt)
    for char in chars:
        if char == "%":
            directive = next(chars)
            if directive not in _DIRECTIVES:
                raise ValueError(
                    f"Unsupported directive %{directive} in grammar {fmt!r}.\n"
                    f"Supported: {', '.join('%' + d for d in _DIRECTIVES)}"
                )
            width = _DIRECTIVES[directive].width
            parts.append(rf"\s*(?P<{directive}>[0-9]{{1,{width}}}+)")
        elif char.isspace():
            parts.append(r"\s*")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts))


def _two_digit_year(value: int) -> int:
    """POSIX %y: 69-99 are 1969-1999, 00-68 are 2000-2068."""
    return value + (1900 if value >= 69 else 2000)


@dataclass(frozen=True)
class Grammar:
    """An absolute date/time format that must match the whole text."""

    format: str
    zero_seconds: bool = False
    clear_time: bool = False
    pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", _compile(self.format))


# Tried in order; the first full match wins.
GRAMMARS: tuple[Grammar, ...] = (
    Grammar("%y-%m-%d %H:%M:%S"),
    Grammar("%Y-%m-%d %H:%M:%S"),
    Grammar("%y-%m-%d %H:%M", zero_seconds=True),
    Grammar("%Y-%m-%d %H:%M", zero_seconds=True),
    Grammar("%y-%m-%d", clear_time=True),
    Grammar("%Y-%m-%d", clear_time=True),
    Grammar("%H:%M:%S"),
    Grammar("%H:%M", zero_seconds=True),
    # Seconds are parsed but then dropped, matching long-standing behavior.
    Grammar("%Y%m%d%H%M%S", zero_seconds=True),
)


def try_grammar(
    grammar: Grammar, text: str, seed: BrokenDownTime
) -> BrokenDownTime | None:
    """Apply `grammar` to `text`, starting from `seed`.

    Fields the grammar does not mention keep their seed values. Returns None
    unless the grammar consumes the entire text with every field in range.
    """
    match = grammar.pattern.fullmatch(text)
    if match is None:
        return None

    fields = {name: int(value) for name, value in match.groupdict().items()}
    for name, value in fields.items():
        spec = _DIRECTIVES[name]
        if not spec.low <= value <= spec.high:
            return None

    changes: dict[str, int] = {"fold": 0}
    if "y" in fields:
        changes["year"] = _two_digit_year(fields["y"])
    if "Y" in fields:
        changes["year"] = fields["Y"]
    if "m" in fields:
        changes["month"] = fields["m"] - 1
    if "d" in fields:
        changes["day"] = fields["d"]
    if "H" in fields:
        changes["hour"] = fields["H"]
    if "M" in fields:
        changes["minute"] = fields["M"]
    if "S" in fields:
        changes["second"] = fields["S"]

    bdt = replace(seed, **changes)
    if grammar.clear_time:
        return bdt.clear_time()
    if grammar.zero_seconds:
        return replace(bdt, second=0)
    return bdt


class TimestampResolver:
    """Turn timestamp expressions into instants relative to a supplied `now`."""

    def __init__(
        self,
        tz: str | None = None,
        durations: DurationParser | None = None,
        grammars: Sequence[Grammar] = GRAMMARS,
        weekdays: Sequence[Weekday] = WEEKDAYS,
    ):
        """
        Initialize a timestamp resolver.

        Args:
            tz: IANA timezone name (e.g., "UTC", "Europe/Berlin"), or None
                for the process-local zone
            durations: Parser for relative offsets (default unit table if None)
            grammars: Absolute formats, in priority order
            weekdays: Weekday names accepted as a prefix
        """
        self.tz: str | None = tz
        self.durations: DurationParser = durations or DurationParser()
        self.grammars: tuple[Grammar, ...] = tuple(grammars)
        self.weekdays: tuple[Weekday, ...] = tuple(weekdays)

    def _keyword(self, text: str, seed: BrokenDownTime) -> BrokenDownTime | None:
        if text == "now":
            return seed
        if text == "today":
            return seed.clear_time()
        if text == "yesterday":
            return replace(seed, day=seed.day - 1).clear_time()
        if text == "tomorrow":
            return replace(seed, day=seed.day + 1).clear_time()
        return None

    def _relative(self, text: str) -> tuple[int, int] | None:
        """Return (plus, minus) offsets for relative forms, None otherwise."""
        if text.startswith("+"):
            return self.durations.parse(text[1:]), 0
        if text.startswith("-"):
            return 0, self.durations.parse(text[1:])
        if text.endswith(AGO_SUFFIX):
            try:
                magnitude = _strip_ago(text)
            except MemoryError as exc:
                raise AllocationFailure(
                    f"Out of memory while stripping {AGO_SUFFIX!r} from input."
                ) from exc
            return 0, self.durations.parse(magnitude)
        return None

    def _strip_weekday(self, text: str) -> tuple[int | None, str]:
        for day in self.weekdays:
            skip = len(day.name)
            if text[:skip].lower() != day.name.lower():
                continue
            if text[skip : skip + 1] != " ":
                continue
            return day.number, text[skip + 1 :]
        return None, text

    def _absolute(self, text: str, seed: BrokenDownTime) -> BrokenDownTime:
        for grammar in self.grammars:
            bdt = try_grammar(grammar, text, seed)
            if bdt is not None:
                logger.debug("Matched %r with grammar %r", text, grammar.format)
                return bdt

        logger.debug("Rejected %r: no grammar matched", text)
        formats = "\n".join(f"  {grammar.format}" for grammar in self.grammars)
        raise UnknownFormat(
            f"Unrecognized timestamp format: {text!r}\n"
            f"Expected 'now', 'today', 'yesterday', 'tomorrow', '+<duration>', "
            f"'-<duration>', '<duration> ago', or one of:\n{formats}"
        )

    def resolve(self, text: str, now: int) -> int:
        """
        Resolve `text` to an instant in microseconds since the epoch.

        Args:
            text: Timestamp expression (see module docstring)
            now: Current instant in microseconds; relative forms and fields
                missing from `text` are taken from it

        Returns:
            The resolved instant, never below 0

        Raises:
            InvalidSyntax, OutOfRange, UnknownUnit: From a relative duration
            UnknownFormat: If no form matches
            CalendarError: If the resulting date cannot be normalized
            WeekdayMismatch: If a weekday prefix disagrees with the date
            AllocationFailure: If stripping the " ago" suffix fails
        """
        if not 0 <= now <= USEC_MAX:
            raise OutOfRange(f"now={now} is not a valid instant.")

        seed = decompose(now, self.tz)
        plus, minus = 0, 0
        weekday: int | None = None

        bdt = self._keyword(text, seed)
        if bdt is not None:
            logger.debug("Resolved %r as keyword", text)
        elif (offsets := self._relative(text)) is not None:
            plus, minus = offsets
            bdt = seed
            logger.debug("Resolved %r as offset +%d/-%d usec", text, plus, minus)
        else:
            weekday, rest = self._strip_weekday(text)
            bdt = self._absolute(rest, seed)

        seconds, actual = normalize(bdt, self.tz)
        if weekday is not None and actual != weekday:
            logger.debug(
                "Rejected %r: weekday %d named, date falls on %d", text, weekday, actual
            )
            raise WeekdayMismatch(text, weekday, actual)

        # Sub-second precision survives only when the seed was left untouched
        fraction = now % USEC_PER_SEC if bdt is seed else 0

        result = seconds * USEC_PER_SEC + fraction + plus
        if result > USEC_MAX:
            raise OutOfRange(f"Timestamp {text!r} overflows {USEC_MAX} microseconds.")
        return saturating_sub(result, minus)


def parse_timestamp(text: str, now: int, *, tz: str | None = None) -> int:
    """
    Resolve a timestamp expression to microseconds since the epoch.

    Args:
        text: Expression such as "now", "yesterday", "+5min", "3h ago",
            "2012-09-22 16:34:22" or "Sat 16:34"
        now: Current instant in microseconds (see reltime.clock.now)
        tz: IANA timezone name for calendar fields, or None for local time

    Returns:
        Instant in microseconds since the epoch

    Example:
        >>> from reltime import clock, parse_timestamp
        >>> start = parse_timestamp("yesterday", clock.now(), tz="UTC")
        >>> later = parse_timestamp("+90min", start, tz="UTC")
        >>> later - start
        5400000000
    """
    return TimestampResolver(tz).resolve(text, now)
