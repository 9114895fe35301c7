"""ISO-8601-style rendering of instants and broken-down times."""

from enum import IntFlag

from reltime.broken_down import BrokenDownTime, decompose
from reltime.errors import BufferTooSmall
from reltime.util import USEC_PER_DAY, USEC_PER_SEC

# Longest output of format_iso with every field enabled, plus slack
ISO_8601_BUFSIZ = 32

_MONTH_ABBR = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


class IsoFormat(IntFlag):
    DATE = 1
    TIME = 2
    DOT_FRACTION = 4
    COMMA_FRACTION = 8
    TIMEZONE = 16
    SPACE_SEPARATOR = 32
    USE_UTC = 64


def _offset(seconds: int | None) -> str:
    """Numeric zone offset in the form +HHMM."""
    seconds = seconds or 0
    sign = "-" if seconds < 0 else "+"
    hours, minutes = divmod(abs(seconds) // 60, 60)
    return f"{sign}{hours:02d}{minutes:02d}"


def format_iso(
    bdt: BrokenDownTime,
    usec: int = 0,
    flags: IsoFormat = IsoFormat.DATE | IsoFormat.TIME,
    *,
    bufsize: int = ISO_8601_BUFSIZ,
) -> str:
    """
    Render calendar fields as an ISO-8601-like string.

    Args:
        bdt: Calendar fields to render
        usec: Sub-second fraction in microseconds (0-999999)
        flags: Which parts to render; DOT_FRACTION wins over COMMA_FRACTION
        bufsize: Maximum length of the result

    Returns:
        e.g. "2012-09-22T16:34:22" or "2012-09-22 16:34:22.000123+0200"

    Raises:
        BufferTooSmall: If the result is longer than `bufsize`
    """
    parts: list[str] = []

    if flags & IsoFormat.DATE:
        parts.append(f"{bdt.year:4d}-{bdt.month + 1:02d}-{bdt.day:02d}")

    if flags & IsoFormat.DATE and flags & IsoFormat.TIME:
        parts.append(" " if flags & IsoFormat.SPACE_SEPARATOR else "T")

    if flags & IsoFormat.TIME:
        parts.append(f"{bdt.hour:02d}:{bdt.minute:02d}:{bdt.second:02d}")

    if flags & IsoFormat.DOT_FRACTION:
        parts.append(f".{usec:06d}")
    elif flags & IsoFormat.COMMA_FRACTION:
        parts.append(f",{usec:06d}")

    if flags & IsoFormat.TIMEZONE:
        parts.append(_offset(bdt.utcoffset))

    result = "".join(parts)
    if len(result) > bufsize:
        raise BufferTooSmall(len(result), bufsize)
    return result


def format_instant(
    instant: int,
    flags: IsoFormat = IsoFormat.DATE | IsoFormat.TIME,
    *,
    tz: str | None = None,
    bufsize: int = ISO_8601_BUFSIZ,
) -> str:
    """Render an instant in microseconds; USE_UTC overrides `tz`."""
    zone = "UTC" if flags & IsoFormat.USE_UTC else tz
    bdt = decompose(instant, zone)
    return format_iso(bdt, instant % USEC_PER_SEC, flags, bufsize=bufsize)


def format_seconds(
    seconds: int,
    flags: IsoFormat = IsoFormat.DATE | IsoFormat.TIME,
    *,
    tz: str | None = None,
    bufsize: int = ISO_8601_BUFSIZ,
) -> str:
    """Render whole seconds since the epoch; any fraction renders as zero."""
    return format_instant(seconds * USEC_PER_SEC, flags, tz=tz, bufsize=bufsize)


def is_today(instant: int, now: int) -> bool:
    """True if both instants fall on the same UTC day since the epoch."""
    return instant // USEC_PER_DAY == now // USEC_PER_DAY


def is_this_year(instant: int, now: int) -> bool:
    """True if both instants fall in the same 365-day block since the epoch.

    The blocks ignore leap days, so they drift from calendar years.
    """
    year = 365 * USEC_PER_DAY
    return instant // year == now // year


def format_short(
    instant: int,
    now: int,
    *,
    this_year_hhmm: bool = False,
    tz: str | None = None,
) -> str:
    """
    Render an instant compactly relative to `now`.

    Returns:
        "16:34" for today, "Sep22" (or "Sep22/16:34" with `this_year_hhmm`)
        for this year, "2012-Sep22" otherwise
    """
    bdt = decompose(instant, tz)
    month = _MONTH_ABBR[bdt.month]

    if is_today(instant, now):
        return f"{bdt.hour:02d}:{bdt.minute:02d}"
    if is_this_year(instant, now):
        if this_year_hhmm:
            return f"{month}{bdt.day:02d}/{bdt.hour:02d}:{bdt.minute:02d}"
        return f"{month}{bdt.day:02d}"
    return f"{bdt.year}-{month}{bdt.day:02d}"
