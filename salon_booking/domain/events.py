"""Events emitted over an appointment's lifetime."""

from __future__ import annotations

from pydantic import BaseModel

from salon_booking.domain.models import AppointmentStatus


class AppointmentBooked(BaseModel):
    """Fired after an appointment is committed to the store."""

    appointment_id: str
    booking_group_id: str | None = None


class AppointmentCancelled(BaseModel):
    """Fired when an appointment is deleted or set to cancelled."""

    appointment_id: str
    deleted: bool = False


class AppointmentRescheduled(BaseModel):
    """Fired after an appointment moves to a new slot.

    ``previous`` holds the old resource, date and times. When the move
    created a replacement appointment, ``appointment_id`` is the replacement
    and ``original_appointment_id`` the one it replaced.
    """

    appointment_id: str
    previous: dict
    original_appointment_id: str | None = None


class AppointmentStatusChanged(BaseModel):
    appointment_id: str
    old_status: AppointmentStatus
    new_status: AppointmentStatus
