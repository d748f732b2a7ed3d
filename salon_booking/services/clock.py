"""Parsing, ordering and arithmetic for civil clock times.

The accepted grammar is one or two hour digits (0-23), a colon, and exactly
two minute digits (00-59): ``9:00`` and ``09:00`` are the same time, ``9:0``
is not a time at all. Everything here is pure.
"""

from __future__ import annotations

import re
from enum import IntEnum

from salon_booking.domain.errors import InvalidTimeFormat
from salon_booking.domain.models import TimeValue

# ASCII digits only; fullmatch so a trailing newline is not accepted.
_TIME_PATTERN = re.compile(r"([0-9]|[01][0-9]|2[0-3]):([0-5][0-9])")

MINUTES_PER_DAY = 24 * 60


class Ordering(IntEnum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


def parse_time(text: object) -> TimeValue:
    """Parse ``H:MM`` / ``HH:MM`` text into a TimeValue.

    Raises ``InvalidTimeFormat`` for every input outside the grammar,
    non-strings included. No other exception escapes.
    """
    if not isinstance(text, str):
        raise InvalidTimeFormat(text)
    match = _TIME_PATTERN.fullmatch(text)
    if match is None:
        raise InvalidTimeFormat(text)
    return TimeValue(hour=int(match.group(1)), minute=int(match.group(2)))


def is_valid_time(text: object) -> bool:
    try:
        parse_time(text)
    except InvalidTimeFormat:
        return False
    return True


def to_minutes(value: TimeValue) -> int:
    """Minutes since midnight, in ``[0, 1439]``."""
    return value.hour * 60 + value.minute


def from_minutes(total: int) -> TimeValue:
    if not 0 <= total < MINUTES_PER_DAY:
        raise ValueError(f"{total} minutes is outside a single civil day")
    return TimeValue(hour=total // 60, minute=total % 60)


def compare(a: TimeValue, b: TimeValue) -> Ordering:
    left, right = to_minutes(a), to_minutes(b)
    if left < right:
        return Ordering.LESS
    if left > right:
        return Ordering.GREATER
    return Ordering.EQUAL


def format_time(value: TimeValue) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"
