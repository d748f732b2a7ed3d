"""Service for turning service durations into appointment end times."""

from __future__ import annotations

import logging

from salon_booking.services.clock import parse_time, to_minutes

logger = logging.getLogger("salon_booking.durations")

DEFAULT_DURATION_MINUTES = 30


def duration_to_minutes(text: str | None) -> int:
    """Convert ``"1 hour 30 minutes"``-style text into a number of minutes.

    Reads ``<value> <unit>`` pairs where the unit contains ``hour`` or ``min``.
    Falls back to 30 minutes when the text is empty or yields nothing.
    """
    if not text or not isinstance(text, str):
        logger.warning(
            "Invalid duration %r, defaulting to %d minutes",
            text,
            DEFAULT_DURATION_MINUTES,
        )
        return DEFAULT_DURATION_MINUTES

    parts = text.split()
    minutes = 0
    for raw_value, unit in zip(parts[0::2], parts[1::2]):
        try:
            value = int(raw_value)
        except ValueError:
            continue
        unit = unit.lower()
        if "hour" in unit:
            minutes += value * 60
        elif "min" in unit:
            minutes += value

    if minutes <= 0:
        logger.warning(
            "Duration %r yielded no minutes, defaulting to %d",
            text,
            DEFAULT_DURATION_MINUTES,
        )
        return DEFAULT_DURATION_MINUTES
    return minutes


def compute_end_time(start_text: str, duration_minutes: int) -> str:
    """Return the zero-padded ``HH:MM`` text *duration_minutes* after the start.

    The result is not clamped to the day: ``23:00`` plus 120 minutes gives
    ``"25:00"``, which ``parse_time`` rejects downstream. Raises
    ``InvalidTimeFormat`` if *start_text* itself is not a time.
    """
    total = to_minutes(parse_time(start_text)) + duration_minutes
    return f"{total // 60:02d}:{total % 60:02d}"
