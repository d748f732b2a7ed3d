"""In-memory repositories for appointments and their timelines."""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import ExitStack
from datetime import date

from salon_booking.domain.errors import AppointmentNotFound
from salon_booking.domain.models import (
    Appointment,
    AppointmentStatus,
    CommitResult,
    Interval,
    TimelineEntry,
)
from salon_booking.services.conflicts import find_conflict

logger = logging.getLogger("salon_booking.repos")

ScheduleKey = tuple[str, date]


class AppointmentRepository:
    """Dict-backed store for Appointment instances, keyed by id.

    Doubles as the schedule store read by the booking gate. Every write that
    can place an interval on a (resource, date) schedule re-checks overlap
    while holding that key's lock, so two requests that both passed the gate
    cannot both land.
    """

    def __init__(self) -> None:
        self._store: dict[str, Appointment] = {}
        self._locks: dict[ScheduleKey, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: ScheduleKey) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    def _occupying(
        self, key: ScheduleKey, exclude_appointment_id: str | None = None
    ) -> list[Appointment]:
        resource_id, civil_date = key
        return [
            a
            for a in list(self._store.values())
            if a.resource_id == resource_id
            and a.civil_date == civil_date
            and a.occupies_schedule
            and a.id != exclude_appointment_id
        ]

    def _clash(
        self, key: ScheduleKey, interval: Interval, exclude_appointment_id: str | None
    ) -> Interval | None:
        schedule = [a.interval for a in self._occupying(key, exclude_appointment_id)]
        return find_conflict(interval, schedule)

    # ------------------------------------------------------------------
    # Schedule store
    # ------------------------------------------------------------------

    def read_schedule(
        self,
        resource_id: str,
        civil_date: date,
        exclude_appointment_id: str | None = None,
    ) -> list[Interval]:
        key = (resource_id, civil_date)
        with self._lock_for(key):
            return [a.interval for a in self._occupying(key, exclude_appointment_id)]

    def commit(self, appointment: Appointment) -> CommitResult:
        key = (appointment.resource_id, appointment.civil_date)
        with self._lock_for(key):
            if appointment.occupies_schedule:
                clash = self._clash(key, appointment.interval, appointment.id)
                if clash is not None:
                    logger.info(
                        "Store rejected %s on %s %s: overlaps %s",
                        appointment.interval,
                        appointment.resource_id,
                        appointment.civil_date,
                        clash,
                    )
                    return CommitResult.REJECTED_BY_STORE
            self._store[appointment.id] = appointment

        logger.info(
            "Committed appointment %s %s on %s %s",
            appointment.id,
            appointment.interval,
            appointment.resource_id,
            appointment.civil_date,
        )
        return CommitResult.COMMITTED

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, appointment_id: str) -> Appointment | None:
        return self._store.get(appointment_id)

    def list_all(self) -> list[Appointment]:
        return list(self._store.values())

    def list_for_customer(
        self, email: str | None = None, phone: str | None = None
    ) -> list[Appointment]:
        """Return appointments for a customer, newest first.

        Email takes precedence over phone; with neither, every appointment.
        """
        if email:
            matches = [a for a in self._store.values() if a.customer.email == email]
        elif phone:
            matches = [a for a in self._store.values() if a.customer.phone == phone]
        else:
            matches = list(self._store.values())
        return sorted(matches, key=lambda a: a.created_at, reverse=True)

    def list_for_salon(
        self,
        salon_id: str,
        civil_date: date | None = None,
        resource_id: str | None = None,
    ) -> list[Appointment]:
        """Return a salon's appointments in calendar order.

        Cancelled appointments are included so the owner sees the full day.
        """
        matches = [
            a
            for a in self._store.values()
            if a.salon_id == salon_id
            and (civil_date is None or a.civil_date == civil_date)
            and (resource_id is None or a.resource_id == resource_id)
        ]
        return sorted(matches, key=lambda a: (a.civil_date, a.start_time))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def delete(self, appointment_id: str) -> Appointment | None:
        return self._store.pop(appointment_id, None)

    def _current_key(self, appointment_id: str) -> ScheduleKey:
        stored = self._store.get(appointment_id)
        if stored is None:
            raise AppointmentNotFound(appointment_id)
        return (stored.resource_id, stored.civil_date)

    def update_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> tuple[CommitResult, Appointment]:
        """Change an appointment's status.

        Cancelling frees the interval. Moving a cancelled appointment back to
        an active status re-checks its interval like a fresh commit.
        """
        while True:
            key = self._current_key(appointment_id)
            with self._lock_for(key):
                # Moved by a concurrent reschedule before the lock was taken.
                if self._current_key(appointment_id) != key:
                    continue

                stored = self._store[appointment_id]
                reactivating = (
                    not stored.occupies_schedule
                    and status != AppointmentStatus.CANCELLED
                )
                if (
                    reactivating
                    and self._clash(key, stored.interval, stored.id) is not None
                ):
                    return CommitResult.REJECTED_BY_STORE, stored
                stored.status = status
                return CommitResult.COMMITTED, stored

    def reschedule(
        self,
        appointment_id: str,
        resource_id: str,
        civil_date: date,
        interval: Interval,
        create_new: bool = False,
    ) -> tuple[CommitResult, Appointment]:
        """Move an appointment to a new (resource, date, interval).

        The target schedule is re-checked without the appointment itself.
        With *create_new* a replacement appointment takes a fresh id and links
        back through ``original_appointment_id``; the old one is removed.
        Status is preserved either way.
        """
        new_key = (resource_id, civil_date)
        while True:
            old_key = self._current_key(appointment_id)
            with ExitStack() as stack:
                # Fixed order so two moves in opposite directions cannot deadlock.
                for key in sorted({old_key, new_key}):
                    stack.enter_context(self._lock_for(key))
                if self._current_key(appointment_id) != old_key:
                    continue

                stored = self._store[appointment_id]
                clash = self._clash(new_key, interval, stored.id)
                if stored.occupies_schedule and clash is not None:
                    return CommitResult.REJECTED_BY_STORE, stored

                if create_new:
                    moved = stored.model_copy(
                        update={
                            "id": str(uuid.uuid4()),
                            "resource_id": resource_id,
                            "civil_date": civil_date,
                            "start_time": interval.start,
                            "end_time": interval.end,
                            "is_rescheduled": True,
                            "original_appointment_id": stored.id,
                        }
                    )
                    del self._store[stored.id]
                    self._store[moved.id] = moved
                else:
                    stored.resource_id = resource_id
                    stored.civil_date = civil_date
                    stored.start_time = interval.start
                    stored.end_time = interval.end
                    stored.is_rescheduled = True
                    moved = stored
                break

        logger.info(
            "Rescheduled appointment %s to %s on %s %s",
            appointment_id,
            interval,
            resource_id,
            civil_date,
        )
        return CommitResult.COMMITTED, moved


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []

    def add(self, entry: TimelineEntry) -> None:
        self._entries.append(entry)

    def list_for_appointment(self, appointment_id: str) -> list[TimelineEntry]:
        return sorted(
            [e for e in self._entries if e.appointment_id == appointment_id],
            key=lambda e: e.timestamp,
        )
