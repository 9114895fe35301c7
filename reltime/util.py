"""Microsecond unit sizes and unsigned arithmetic helpers.

Instants and durations are plain ints counting microseconds, bounded by
USEC_MAX. Month and year are the average Julian lengths used for relative
offsets, not calendar months.
"""

# Sizes of each unit in microseconds
USEC_PER_USEC = 1
USEC_PER_MSEC = 1_000
USEC_PER_SEC = 1_000_000
USEC_PER_MINUTE = 60 * USEC_PER_SEC
USEC_PER_HOUR = 3600 * USEC_PER_SEC
USEC_PER_DAY = 86400 * USEC_PER_SEC
USEC_PER_WEEK = 7 * USEC_PER_DAY
USEC_PER_MONTH = 2629800 * USEC_PER_SEC
USEC_PER_YEAR = 31557600 * USEC_PER_SEC

# Instants and durations are unsigned 64-bit microsecond counts
USEC_MAX = 2**64 - 1


def saturating_sub(value: int, amount: int) -> int:
    """Subtract `amount` from `value`, clamping at zero instead of going negative."""
    if value > amount:
        return value - amount
    return 0
