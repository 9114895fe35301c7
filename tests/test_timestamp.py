"""Tests for timestamp expression resolution."""

import logging
from datetime import datetime, timezone

import pytest

from reltime import (
    GRAMMARS,
    AllocationFailure,
    CalendarError,
    InvalidSyntax,
    IsoFormat,
    OutOfRange,
    TimestampResolver,
    UnknownFormat,
    WeekdayMismatch,
    decompose,
    format_instant,
    parse_timestamp,
)
from reltime import timestamp
from reltime.timestamp import try_grammar
from reltime.util import USEC_PER_MINUTE, USEC_PER_SEC


def _usec(*fields: int) -> int:
    """UTC calendar fields to microseconds since the epoch."""
    dt = datetime(*fields, tzinfo=timezone.utc)
    return int(dt.timestamp()) * USEC_PER_SEC


# Saturday 2012-09-22 16:34:22.123456 UTC
NOW = _usec(2012, 9, 22, 16, 34, 22) + 123_456


def test_now_returns_now_exactly():
    """Test that "now" returns the supplied instant unchanged."""
    assert parse_timestamp("now", NOW, tz="UTC") == NOW


def test_today_truncates_to_midnight():
    """Test that "today" is midnight of the current day."""
    assert parse_timestamp("today", NOW, tz="UTC") == _usec(2012, 9, 22)


def test_yesterday_and_tomorrow():
    """Test that "yesterday" and "tomorrow" are neighbouring midnights."""
    assert parse_timestamp("yesterday", NOW, tz="UTC") == _usec(2012, 9, 21)
    assert parse_timestamp("tomorrow", NOW, tz="UTC") == _usec(2012, 9, 23)


def test_yesterday_rolls_back_across_month():
    """Test that day 0 normalizes to the last day of the previous month."""
    march_first = _usec(2012, 3, 1, 10, 0, 0)
    assert parse_timestamp("yesterday", march_first, tz="UTC") == _usec(2012, 2, 29)


def test_tomorrow_rolls_over_year():
    """Test that "tomorrow" on Dec 31 is Jan 1 of the next year."""
    new_years_eve = _usec(2012, 12, 31, 23, 0, 0)
    assert parse_timestamp("tomorrow", new_years_eve, tz="UTC") == _usec(2013, 1, 1)


def test_keywords_are_case_sensitive():
    """Test that keywords only match in lower case."""
    with pytest.raises(UnknownFormat):
        parse_timestamp("Now", NOW, tz="UTC")


def test_plus_and_minus_offsets():
    """Test that relative forms keep sub-second precision of now."""
    assert parse_timestamp("+5min", NOW, tz="UTC") == NOW + 300_000_000
    assert parse_timestamp("-5min", NOW, tz="UTC") == NOW - 300_000_000
    assert parse_timestamp("+1h 30min", NOW, tz="UTC") == NOW + 90 * USEC_PER_MINUTE


def test_ago_matches_minus():
    """Test that "<duration> ago" equals "-<duration>"."""
    assert parse_timestamp("5min ago", NOW, tz="UTC") == parse_timestamp(
        "-5min", NOW, tz="UTC"
    )
    assert parse_timestamp("3 days ago", NOW, tz="UTC") == _usec(
        2012, 9, 19, 16, 34, 22
    ) + 123_456


def test_minus_saturates_at_zero():
    """Test that subtracting past the epoch yields 0, not a negative instant."""
    assert parse_timestamp("-5min", 100 * USEC_PER_SEC, tz="UTC") == 0
    assert parse_timestamp("-5min", 300 * USEC_PER_SEC, tz="UTC") == 0
    assert parse_timestamp("10min ago", 0, tz="UTC") == 0


def test_relative_duration_errors_propagate():
    """Test that duration errors surface from relative forms."""
    with pytest.raises(InvalidSyntax):
        parse_timestamp("+", NOW, tz="UTC")

    with pytest.raises(OutOfRange):
        parse_timestamp("--5min", NOW, tz="UTC")

    with pytest.raises(InvalidSyntax):
        parse_timestamp(" ago", NOW, tz="UTC")


def test_full_date_time():
    """Test that both year widths parse a full date and time."""
    later = _usec(2020, 1, 1, 12, 0, 0)
    expected = _usec(2012, 9, 22, 16, 34, 22)

    assert parse_timestamp("2012-09-22 16:34:22", later, tz="UTC") == expected
    assert parse_timestamp("12-09-22 16:34:22", later, tz="UTC") == expected


def test_date_hour_minute_zeroes_seconds():
    """Test that date with HH:MM sets seconds to 0."""
    later = _usec(2020, 1, 1, 12, 0, 0)
    expected = _usec(2012, 9, 22, 16, 34, 0)

    assert parse_timestamp("2012-09-22 16:34", later, tz="UTC") == expected
    assert parse_timestamp("12-09-22 16:34", later, tz="UTC") == expected


def test_date_only_zeroes_time():
    """Test that a bare date is midnight of that day."""
    assert parse_timestamp("2012-01-02", NOW, tz="UTC") == _usec(2012, 1, 2)
    assert parse_timestamp("12-01-02", NOW, tz="UTC") == _usec(2012, 1, 2)


def test_two_digit_year_century():
    """Test POSIX %y: 69-99 map to the 1900s, 00-68 to the 2000s."""
    assert parse_timestamp("70-01-02", NOW, tz="UTC") == _usec(1970, 1, 2)
    assert parse_timestamp("99-12-31", NOW, tz="UTC") == _usec(1999, 12, 31)
    assert parse_timestamp("68-06-01", NOW, tz="UTC") == _usec(2068, 6, 1)


def test_time_only_uses_today():
    """Test that time-only forms keep the date of now and drop its fraction."""
    assert parse_timestamp("08:15:30", NOW, tz="UTC") == _usec(2012, 9, 22, 8, 15, 30)
    assert parse_timestamp("08:15", NOW, tz="UTC") == _usec(2012, 9, 22, 8, 15, 0)
    assert parse_timestamp("8:5", NOW, tz="UTC") == _usec(2012, 9, 22, 8, 5, 0)


def test_compact_form_drops_seconds():
    """Test that yyyymmddHHMMSS parses seconds but forces them to zero."""
    assert parse_timestamp("20120922163422", NOW, tz="UTC") == _usec(
        2012, 9, 22, 16, 34, 0
    )


@pytest.mark.parametrize(
    "text",
    ["2012-09-22x", "2012-09-22 ", "16:34:22 ", "16:34:22\n", "next tuesday", ""],
)
def test_trailing_or_unknown_text_is_rejected(text: str):
    """Test that grammars must consume the whole text."""
    with pytest.raises(UnknownFormat, match="Unrecognized timestamp format"):
        parse_timestamp(text, NOW, tz="UTC")


def test_out_of_range_fields_are_rejected():
    """Test that month 13 and hour 24 match no grammar."""
    with pytest.raises(UnknownFormat):
        parse_timestamp("2012-13-01", NOW, tz="UTC")

    with pytest.raises(UnknownFormat):
        parse_timestamp("24:00", NOW, tz="UTC")


def test_weekday_prefix_matches_date():
    """Test that a correct weekday name is accepted in any case."""
    expected = _usec(2012, 9, 22)

    assert parse_timestamp("Sat 2012-09-22", NOW, tz="UTC") == expected
    assert parse_timestamp("saturday 2012-09-22", NOW, tz="UTC") == expected
    assert parse_timestamp("Monday 2012-09-24", NOW, tz="UTC") == _usec(2012, 9, 24)
    assert parse_timestamp("Sat 16:34", NOW, tz="UTC") == _usec(
        2012, 9, 22, 16, 34, 0
    )


def test_weekday_mismatch():
    """Test that a wrong weekday name raises WeekdayMismatch."""
    with pytest.raises(WeekdayMismatch, match="does not match") as exc_info:
        parse_timestamp("Monday 2012-09-22", NOW, tz="UTC")

    assert exc_info.value.expected == 1
    assert exc_info.value.actual == 6

    with pytest.raises(WeekdayMismatch):
        parse_timestamp("Mon 16:34", NOW, tz="UTC")


def test_weekday_requires_following_space():
    """Test that a weekday name must be followed by a space."""
    with pytest.raises(UnknownFormat):
        parse_timestamp("Sat", NOW, tz="UTC")

    with pytest.raises(UnknownFormat):
        parse_timestamp("Sat,2012-09-22", NOW, tz="UTC")


def test_date_before_epoch_is_calendar_error():
    """Test that a date before 1970 raises CalendarError."""
    with pytest.raises(CalendarError, match="before the epoch"):
        parse_timestamp("69-12-31", NOW, tz="UTC")


def test_invalid_now_is_out_of_range():
    """Test that a negative now raises OutOfRange."""
    with pytest.raises(OutOfRange):
        parse_timestamp("now", -1, tz="UTC")


def test_local_zone_offset():
    """Test that calendar fields are read in the resolver's zone."""
    assert parse_timestamp("2012-09-22 16:34:22", NOW, tz="Europe/Berlin") == _usec(
        2012, 9, 22, 14, 34, 22
    )


def test_today_uses_local_calendar_day():
    """Test that 'today' follows the zone's date, not the UTC date."""
    late_evening_utc = _usec(2012, 9, 22, 23, 30, 0)

    assert parse_timestamp("today", late_evening_utc, tz="Europe/Berlin") == _usec(
        2012, 9, 22, 22, 0, 0
    )


def test_dst_gap_moves_forward():
    """Test that a nonexistent local time resolves past the gap."""
    # Berlin skipped 02:00-03:00 on 2012-03-25
    assert parse_timestamp("2012-03-25 02:30", NOW, tz="Europe/Berlin") == _usec(
        2012, 3, 25, 1, 30, 0
    )


def test_now_in_repeated_hour_is_exact():
    """Test that 'now' survives the second pass through an ambiguous hour."""
    # 02:30 CET, the second 02:30 in Berlin on 2012-10-28
    second_pass = _usec(2012, 10, 28, 1, 30, 0) + 7

    assert parse_timestamp("now", second_pass, tz="Europe/Berlin") == second_pass


def test_round_trip_through_formatting():
    """Test that formatted date and time parse back to the same second."""
    flags = IsoFormat.DATE | IsoFormat.TIME | IsoFormat.SPACE_SEPARATOR

    for instant in (_usec(2012, 9, 22, 16, 34, 22), _usec(2001, 2, 3, 4, 5, 6) + 789):
        text = format_instant(instant, flags, tz="UTC")
        assert parse_timestamp(text, NOW, tz="UTC") == instant - instant % USEC_PER_SEC


def test_try_grammar_is_pure():
    """Test that each attempt starts from the untouched seed."""
    seed = decompose(NOW, "UTC")
    date_only = GRAMMARS[5]

    assert try_grammar(date_only, "2012-09-22x", seed) is None

    result = try_grammar(date_only, "2001-02-03", seed)
    assert result is not None
    assert (result.year, result.month, result.day) == (2001, 1, 3)
    assert (result.hour, result.minute, result.second) == (0, 0, 0)
    assert result.time_cleared
    assert (seed.year, seed.hour) == (2012, 16)
    assert not seed.time_cleared


def test_grammar_priority():
    """Test that the two-digit year form wins when both could apply."""
    seed = decompose(NOW, "UTC")

    assert try_grammar(GRAMMARS[4], "12-01-02", seed) is not None
    assert try_grammar(GRAMMARS[4], "2012-01-02", seed) is None
    assert try_grammar(GRAMMARS[5], "2012-01-02", seed) is not None


def test_resolver_uses_custom_grammars():
    """Test that a resolver only tries the grammars it was given."""
    resolver = TimestampResolver(tz="UTC", grammars=GRAMMARS[6:7])

    assert resolver.resolve("08:15:30", NOW) == _usec(2012, 9, 22, 8, 15, 30)

    with pytest.raises(UnknownFormat):
        resolver.resolve("2012-09-22", NOW)


@pytest.mark.parametrize("text", ["201209221634", "2012922163422", "20120922163"])
def test_compact_form_requires_every_field(text: str):
    """Test that digit runs are read greedily, so short or misaligned input fails."""
    with pytest.raises(UnknownFormat):
        parse_timestamp(text, NOW, tz="UTC")


def test_fields_read_up_to_their_width():
    """Test that fields accept fewer digits than their width."""
    assert parse_timestamp("1-2-3", NOW, tz="UTC") == _usec(2001, 2, 3)
    assert parse_timestamp("2012-9-22 6:04", NOW, tz="UTC") == _usec(
        2012, 9, 22, 6, 4, 0
    )


def test_whitespace_follows_strptime():
    """Test that spaces before numbers and between date and time are optional."""
    expected = _usec(2012, 9, 22, 16, 34, 22)

    assert parse_timestamp("2012-09-2216:34:22", NOW, tz="UTC") == expected
    assert parse_timestamp("2012-09-22  16:34:22", NOW, tz="UTC") == expected
    assert parse_timestamp(" 16:34:22", NOW, tz="UTC") == expected
    assert parse_timestamp("Sat  16:34:22", NOW, tz="UTC") == expected


def test_rejections_are_logged(caplog: pytest.LogCaptureFixture):
    """Test that unmatched formats and weekday mismatches log why at DEBUG."""
    caplog.set_level(logging.DEBUG, logger="reltime.timestamp")

    with pytest.raises(UnknownFormat):
        parse_timestamp("2012-09-22x", NOW, tz="UTC")
    with pytest.raises(WeekdayMismatch):
        parse_timestamp("Mon 2012-09-22", NOW, tz="UTC")

    messages = [record.getMessage() for record in caplog.records]
    assert "Rejected '2012-09-22x': no grammar matched" in messages
    assert "Rejected 'Mon 2012-09-22': weekday 1 named, date falls on 6" in messages


def test_ago_copy_failure_is_allocation_failure(monkeypatch: pytest.MonkeyPatch):
    """Test that running out of memory while stripping ' ago' is reported distinctly."""

    def out_of_memory(text: str) -> str:
        raise MemoryError

    monkeypatch.setattr(timestamp, "_strip_ago", out_of_memory)

    with pytest.raises(AllocationFailure, match="Out of memory") as exc_info:
        parse_timestamp("5min ago", NOW, tz="UTC")

    assert isinstance(exc_info.value.__cause__, MemoryError)
    assert isinstance(exc_info.value, MemoryError)
