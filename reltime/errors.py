"""Error types raised by reltime.

Every error derives from TimeError. Parse failures additionally derive from
ValueError so callers that only know about ValueError still catch them.
"""


class TimeError(Exception):
    """Base class for all reltime errors."""


class ParseError(TimeError, ValueError):
    """A time or duration expression could not be resolved."""


class InvalidSyntax(ParseError):
    """Malformed numeric or grammar token."""


class OutOfRange(ParseError):
    """Negative or overflowing numeric value."""


class UnknownUnit(ParseError):
    """No unit table entry matched the text after a number."""


class UnknownFormat(ParseError):
    """No timestamp grammar matched the whole expression."""


class CalendarError(ParseError):
    """Calendar normalization rejected the resulting date."""


class WeekdayMismatch(ParseError):
    """The named weekday does not match the weekday of the parsed date."""

    def __init__(self, text: str, expected: int, actual: int):
        self.expected: int = expected
        self.actual: int = actual
        super().__init__(
            f"Weekday does not match date in {text!r}.\n"
            f"Named weekday is {expected} but the date falls on {actual} "
            f"(0=Sunday .. 6=Saturday).\n"
            f"Hint: drop the weekday name or fix the date."
        )


class AllocationFailure(TimeError, MemoryError):
    """Copying the input while stripping the ' ago' suffix failed."""


class BufferTooSmall(TimeError, ValueError):
    """Formatted output does not fit in the requested buffer size."""

    def __init__(self, needed: int, bufsize: int):
        self.needed: int = needed
        self.bufsize: int = bufsize
        super().__init__(
            f"Formatted time needs {needed} characters, buffer holds {bufsize}.\n"
            f"Hint: pass a larger bufsize or request fewer IsoFormat fields."
        )
