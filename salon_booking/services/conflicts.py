"""Service for detecting overlaps between booked intervals."""

from __future__ import annotations

from collections.abc import Iterable

from salon_booking.domain.models import Interval
from salon_booking.services.clock import to_minutes


def overlaps(candidate: Interval, existing: Interval) -> bool:
    """Return True iff the two half-open intervals share at least one minute.

    Overlap rule: candidate.start < existing.end AND candidate.end > existing.start.
    Exact boundary touches (end == start) are NOT considered conflicts, and a
    zero-length candidate never overlaps anything.
    """
    return to_minutes(candidate.start) < to_minutes(existing.end) and to_minutes(
        candidate.end
    ) > to_minutes(existing.start)


def find_conflict(candidate: Interval, schedule: Iterable[Interval]) -> Interval | None:
    """Return the first interval of *schedule* (in iteration order) that overlaps."""
    for existing in schedule:
        if overlaps(candidate, existing):
            return existing
    return None


def find_conflicts(candidate: Interval, schedule: Iterable[Interval]) -> list[Interval]:
    """Return every interval of *schedule* that overlaps *candidate*."""
    return [existing for existing in schedule if overlaps(candidate, existing)]
