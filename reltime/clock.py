"""Wall-clock source.

Parsers take ``now`` as an explicit argument; this is the one place that
reads the system clock, for callers that want the current instant.
"""

from time import time_ns


def now() -> int:
    """Current instant in microseconds since the epoch."""
    return time_ns() // 1_000
