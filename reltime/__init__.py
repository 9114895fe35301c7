from .broken_down import BrokenDownTime, decompose, normalize
from .duration import UNITS, DurationParser, Unit, parse_duration
from .errors import (
    AllocationFailure,
    BufferTooSmall,
    CalendarError,
    InvalidSyntax,
    OutOfRange,
    ParseError,
    TimeError,
    UnknownFormat,
    UnknownUnit,
    WeekdayMismatch,
)
from .formatting import (
    IsoFormat,
    format_instant,
    format_iso,
    format_seconds,
    format_short,
    is_this_year,
    is_today,
)
from .timestamp import GRAMMARS, WEEKDAYS, Grammar, TimestampResolver, parse_timestamp
from .util import USEC_PER_DAY, USEC_PER_HOUR, USEC_PER_MINUTE, USEC_PER_SEC

__all__ = [
    "BrokenDownTime",
    "decompose",
    "normalize",
    "Unit",
    "UNITS",
    "DurationParser",
    "parse_duration",
    "Grammar",
    "GRAMMARS",
    "WEEKDAYS",
    "TimestampResolver",
    "parse_timestamp",
    "IsoFormat",
    "format_iso",
    "format_instant",
    "format_seconds",
    "format_short",
    "is_today",
    "is_this_year",
    "TimeError",
    "ParseError",
    "InvalidSyntax",
    "OutOfRange",
    "UnknownUnit",
    "UnknownFormat",
    "CalendarError",
    "WeekdayMismatch",
    "AllocationFailure",
    "BufferTooSmall",
    "USEC_PER_SEC",
    "USEC_PER_MINUTE",
    "USEC_PER_HOUR",
    "USEC_PER_DAY",
]
