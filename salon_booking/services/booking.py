"""Booking gate: validate a requested time range and check it against a schedule.

The gate only advises. It never commits, and the store it reads from must
re-check at commit time (see ``AppointmentRepository.commit``).
"""

from __future__ import annotations

from datetime import date
from typing import Protocol

from salon_booking.domain.errors import InvalidTimeFormat
from salon_booking.domain.models import (
    Appointment,
    BookingDecision,
    CommitResult,
    Interval,
    RejectionReason,
)
from salon_booking.services.clock import Ordering, compare, parse_time
from salon_booking.services.conflicts import find_conflict


class ScheduleStore(Protocol):
    def read_schedule(
        self,
        resource_id: str,
        civil_date: date,
        exclude_appointment_id: str | None = None,
    ) -> list[Interval]:
        """Snapshot of committed intervals for one resource on one date.

        May raise ``StoreUnavailable``.
        """
        ...

    def commit(self, appointment: Appointment) -> CommitResult: ...


class BookingGate:
    def __init__(self, store: ScheduleStore) -> None:
        self.store = store

    def try_book(
        self,
        resource_id: str,
        civil_date: date,
        start_text: str,
        end_text: str,
        exclude_appointment_id: str | None = None,
    ) -> BookingDecision:
        """Decide whether ``[start_text, end_text)`` can be booked on the snapshot.

        All validation happens before the schedule read, so a store failure
        can only surface for a well-formed candidate. Store errors propagate
        unchanged. *exclude_appointment_id* leaves one committed appointment
        out of the snapshot, so an appointment can be moved onto a range that
        overlaps its own old slot.
        """
        try:
            start = parse_time(start_text)
            end = parse_time(end_text)
        except InvalidTimeFormat:
            return BookingDecision.reject(RejectionReason.INVALID_TIME_FORMAT)

        ordering = compare(start, end)
        if ordering is Ordering.GREATER:
            return BookingDecision.reject(RejectionReason.INVERSE_INTERVAL)
        if ordering is Ordering.EQUAL:
            return BookingDecision.reject(RejectionReason.ZERO_LENGTH_INTERVAL)

        candidate = Interval(start=start, end=end)
        schedule = self.store.read_schedule(
            resource_id, civil_date, exclude_appointment_id=exclude_appointment_id
        )
        if find_conflict(candidate, schedule) is not None:
            return BookingDecision.reject(RejectionReason.CONFLICTS_WITH_EXISTING)
        return BookingDecision.accept(candidate)
