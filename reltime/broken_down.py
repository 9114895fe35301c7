"""Calendar decomposition and normalization.

A BrokenDownTime is the calendar-field view of an instant. Parsers mutate its
fields freely, including out-of-range values such as ``day=0`` or ``day=32``,
and `normalize` folds the overflow back into a valid date the way ``mktime``
does. Calendar arithmetic is delegated to python-dateutil rather than done by
hand here.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from dateutil import tz as dateutil_tz
from dateutil.relativedelta import relativedelta

from reltime.errors import CalendarError
from reltime.util import USEC_PER_SEC

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_SECOND = timedelta(seconds=1)


@dataclass(frozen=True, kw_only=True)
class BrokenDownTime:
    year: int
    month: int  # 0-based, 0 = January
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    weekday: int = 0  # 0 = Sunday
    fold: int = 0
    utcoffset: int | None = None
    time_cleared: bool = False

    def clear_time(self) -> "BrokenDownTime":
        """Return a copy with the clock set to 00:00:00."""
        return replace(self, hour=0, minute=0, second=0, fold=0, time_cleared=True)

    def __str__(self) -> str:
        """Human-friendly string with the month shown 1-based."""
        return (
            f"BrokenDownTime({self.year:04d}-{self.month + 1:02d}-{self.day:02d} "
            f"{self.hour:02d}:{self.minute:02d}:{self.second:02d})"
        )


def resolve_zone(tz: str | None = None) -> tzinfo:
    """Return the tzinfo for an IANA zone name, or the process-local zone for None."""
    if tz is None:
        return dateutil_tz.tzlocal()
    return ZoneInfo(tz)


def weekday_of(dt: datetime) -> int:
    """Weekday of `dt` counted from Sunday = 0."""
    return dt.isoweekday() % 7


def decompose(instant: int, tz: str | None = None) -> BrokenDownTime:
    """Split an instant (microseconds since the epoch) into calendar fields.

    The sub-second part of the instant is dropped; callers that need it keep
    ``instant % USEC_PER_SEC`` themselves.
    """
    zone = resolve_zone(tz)
    try:
        dt = _EPOCH + timedelta(seconds=instant // USEC_PER_SEC)
        dt = dt.astimezone(zone)
    except OverflowError as exc:
        raise CalendarError(
            f"Instant {instant} is outside the representable calendar range."
        ) from exc
    offset = dt.utcoffset()
    return BrokenDownTime(
        year=dt.year,
        month=dt.month - 1,
        day=dt.day,
        hour=dt.hour,
        minute=dt.minute,
        second=dt.second,
        weekday=weekday_of(dt),
        fold=dt.fold,
        utcoffset=int(offset.total_seconds()) if offset is not None else None,
    )


def normalize(bdt: BrokenDownTime, tz: str | None = None) -> tuple[int, int]:
    """Convert calendar fields back to whole seconds since the epoch.

    Out-of-range fields carry into the next larger unit (day 32 rolls into the
    following month, day 0 is the last day of the previous month). Local times
    that fall in a DST gap move forward by the size of the gap.

    Returns:
        (seconds, weekday) with weekday counted from Sunday = 0

    Raises:
        CalendarError: If the date is outside the representable range or
            lies before the epoch
    """
    zone = resolve_zone(tz)
    try:
        naive = datetime(bdt.year, 1, 1) + relativedelta(
            months=bdt.month,
            days=bdt.day - 1,
            hours=bdt.hour,
            minutes=bdt.minute,
            seconds=bdt.second,
        )
        local = naive.replace(tzinfo=zone, fold=bdt.fold)
        local = dateutil_tz.resolve_imaginary(local)
        seconds = (local - _EPOCH) // _ONE_SECOND
    except (ValueError, OverflowError) as exc:
        raise CalendarError(
            f"Cannot normalize {bdt}: {exc}.\n"
            f"Supported years are {datetime.min.year}-{datetime.max.year}."
        ) from exc

    if seconds < 0:
        raise CalendarError(
            f"Date {local.isoformat()} lies before the epoch.\n"
            f"Instants are unsigned microsecond counts from 1970-01-01 UTC."
        )
    return seconds, weekday_of(local)
