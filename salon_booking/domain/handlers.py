"""Appointment event handlers, wired up at application startup."""

from __future__ import annotations

from salon_booking.domain.bus import EventBus
from salon_booking.domain.events import (
    AppointmentBooked,
    AppointmentCancelled,
    AppointmentRescheduled,
    AppointmentStatusChanged,
)
from salon_booking.domain.models import TimelineEntry, TimelineEntryType
from salon_booking.repos.memory import AppointmentRepository, TimelineRepository


class HandlerRegistry:
    """Wires appointment-event handlers to the bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        appointment_repo: AppointmentRepository,
        timeline_repo: TimelineRepository,
    ) -> None:
        self.bus = bus
        self.appointment_repo = appointment_repo
        self.timeline_repo = timeline_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(AppointmentBooked, self.on_appointment_booked)
        self.bus.subscribe(AppointmentCancelled, self.on_appointment_cancelled)
        self.bus.subscribe(AppointmentRescheduled, self.on_appointment_rescheduled)
        self.bus.subscribe(AppointmentStatusChanged, self.on_status_changed)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_appointment_booked(self, event: AppointmentBooked) -> None:
        stored = self.appointment_repo.get(event.appointment_id)
        if stored is None:
            return

        self.timeline_repo.add(
            TimelineEntry(
                appointment_id=event.appointment_id,
                type=TimelineEntryType.BOOKED,
                payload={
                    "resource_id": stored.resource_id,
                    "civil_date": stored.civil_date.isoformat(),
                    "start_time": str(stored.start_time),
                    "end_time": str(stored.end_time),
                    "booking_group_id": event.booking_group_id,
                },
            )
        )

    def on_appointment_cancelled(self, event: AppointmentCancelled) -> None:
        # Deleted appointments are gone from the store; the entry is still kept.
        self.timeline_repo.add(
            TimelineEntry(
                appointment_id=event.appointment_id,
                type=TimelineEntryType.CANCELLED,
                payload={"deleted": event.deleted},
            )
        )

    def on_appointment_rescheduled(self, event: AppointmentRescheduled) -> None:
        stored = self.appointment_repo.get(event.appointment_id)
        if stored is None:
            return

        payload = {
            "from": event.previous,
            "to": {
                "resource_id": stored.resource_id,
                "civil_date": stored.civil_date.isoformat(),
                "start_time": str(stored.start_time),
                "end_time": str(stored.end_time),
            },
        }
        if event.original_appointment_id:
            payload["original_appointment_id"] = event.original_appointment_id
            self.timeline_repo.add(
                TimelineEntry(
                    appointment_id=event.original_appointment_id,
                    type=TimelineEntryType.RESCHEDULED,
                    payload={**payload, "replaced_by": event.appointment_id},
                )
            )

        self.timeline_repo.add(
            TimelineEntry(
                appointment_id=event.appointment_id,
                type=TimelineEntryType.RESCHEDULED,
                payload=payload,
            )
        )

    def on_status_changed(self, event: AppointmentStatusChanged) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                appointment_id=event.appointment_id,
                type=TimelineEntryType.STATUS_CHANGED,
                payload={
                    "old_status": event.old_status.value,
                    "new_status": event.new_status.value,
                },
            )
        )
