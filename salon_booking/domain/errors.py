"""Exception hierarchy for the salon booking service."""

from __future__ import annotations


class BookingError(Exception):
    """Base class for all application-level errors."""


class InvalidTimeFormat(BookingError, ValueError):
    """Raised when a clock-time string does not match ``H{1,2}:MM``."""

    def __init__(self, text: object) -> None:
        self.text = text
        super().__init__(f"Invalid time format: {text!r}")


class StoreUnavailable(BookingError):
    """Raised when the schedule store cannot serve a read or a commit."""


class AppointmentNotFound(BookingError):
    """Raised when a store mutation targets an appointment that does not exist."""

    def __init__(self, appointment_id: str) -> None:
        self.appointment_id = appointment_id
        super().__init__(f"Appointment not found: {appointment_id}")


class TokenError(BookingError):
    """Raised when a session token is missing, malformed, tampered or expired."""
