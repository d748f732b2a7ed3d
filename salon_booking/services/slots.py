"""Service for laying out a resource's day as a grid of fixed-width slots."""

from __future__ import annotations

from datetime import date, datetime, time

from dateutil.rrule import DAILY, rrule

from salon_booking.domain.models import Interval, TimeSlotView, TimeValue
from salon_booking.services.booking import ScheduleStore
from salon_booking.services.clock import from_minutes, to_minutes
from salon_booking.services.conflicts import find_conflict


def generate_day_slots(
    open_time: TimeValue, close_time: TimeValue, slot_minutes: int
) -> list[Interval]:
    """Split ``[open_time, close_time)`` into back-to-back slots.

    A trailing remainder shorter than *slot_minutes* is dropped.
    """
    if slot_minutes <= 0:
        raise ValueError("slot_minutes must be positive")

    slots: list[Interval] = []
    start = to_minutes(open_time)
    close = to_minutes(close_time)
    while start + slot_minutes <= close:
        slots.append(
            Interval(start=from_minutes(start), end=from_minutes(start + slot_minutes))
        )
        start += slot_minutes
    return slots


def civil_dates(first: date, days: int) -> list[date]:
    """Return *days* consecutive civil dates starting at *first*."""
    rule = rrule(DAILY, dtstart=datetime.combine(first, time()), count=days)
    return [dt.date() for dt in rule]


def build_slot_grid(
    store: ScheduleStore,
    resource_id: str,
    first_date: date,
    days: int,
    open_time: TimeValue,
    close_time: TimeValue,
    slot_minutes: int,
) -> list[TimeSlotView]:
    """Mark every slot of every requested day as booked or free.

    A slot is booked when any committed interval overlaps it, so a 45-minute
    appointment shows up across every 5-minute slot it touches.
    """
    day_slots = generate_day_slots(open_time, close_time, slot_minutes)
    grid: list[TimeSlotView] = []
    for civil_date in civil_dates(first_date, days):
        schedule = store.read_schedule(resource_id, civil_date)
        for slot in day_slots:
            grid.append(
                TimeSlotView(
                    civil_date=civil_date,
                    start=slot.start,
                    end=slot.end,
                    is_booked=find_conflict(slot, schedule) is not None,
                )
            )
    return grid
