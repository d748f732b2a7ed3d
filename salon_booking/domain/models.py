"""Domain models for the salon booking service."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator


class AppointmentStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DecisionStatus(StrEnum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RejectionReason(StrEnum):
    INVALID_TIME_FORMAT = "invalid_time_format"
    INVERSE_INTERVAL = "inverse_interval"
    ZERO_LENGTH_INTERVAL = "zero_length_interval"
    CONFLICTS_WITH_EXISTING = "conflicts_with_existing"


class CommitResult(StrEnum):
    COMMITTED = "committed"
    REJECTED_BY_STORE = "rejected_by_store"


class TimelineEntryType(StrEnum):
    BOOKED = "booked"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"
    STATUS_CHANGED = "status_changed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Clock values
# ---------------------------------------------------------------------------


class TimeValue(BaseModel):
    """A point on the 24-hour civil clock, 00:00 through 23:59.

    Accepts ``"HH:MM"`` text wherever a TimeValue is validated and always
    serializes back to zero-padded ``"HH:MM"``.
    """

    model_config = ConfigDict(frozen=True)

    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)

    @model_validator(mode="before")
    @classmethod
    def _from_text(cls, data: Any) -> Any:
        if isinstance(data, str):
            from salon_booking.services.clock import parse_time

            parsed = parse_time(data)
            return {"hour": parsed.hour, "minute": parsed.minute}
        return data

    @model_serializer
    def _to_text(self) -> str:
        return str(self)

    @classmethod
    def parse(cls, text: str) -> TimeValue:
        from salon_booking.services.clock import parse_time

        return parse_time(text)

    def _key(self) -> tuple[int, int]:
        return (self.hour, self.minute)

    def __lt__(self, other: TimeValue) -> bool:
        return self._key() < other._key()

    def __le__(self, other: TimeValue) -> bool:
        return self._key() <= other._key()

    def __gt__(self, other: TimeValue) -> bool:
        return self._key() > other._key()

    def __ge__(self, other: TimeValue) -> bool:
        return self._key() >= other._key()

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


class Interval(BaseModel):
    """Half-open range ``[start, end)`` within a single civil day.

    ``start >= end`` is representable here; the booking gate is what refuses it.
    """

    model_config = ConfigDict(frozen=True)

    start: TimeValue
    end: TimeValue

    def __str__(self) -> str:
        return f"[{self.start}, {self.end})"


class BookingDecision(BaseModel):
    """Outcome of a booking check: accepted, or rejected with one reason.

    ``interval`` echoes the caller's own normalised candidate on acceptance.
    """

    model_config = ConfigDict(frozen=True)

    status: DecisionStatus
    reason: RejectionReason | None = None
    interval: Interval | None = None

    @model_validator(mode="after")
    def _reason_iff_rejected(self) -> BookingDecision:
        if (self.status == DecisionStatus.REJECTED) != (self.reason is not None):
            raise ValueError("reason must be set exactly when the decision is rejected")
        return self

    @classmethod
    def accept(cls, interval: Interval | None = None) -> BookingDecision:
        return cls(status=DecisionStatus.ACCEPTED, interval=interval)

    @classmethod
    def reject(cls, reason: RejectionReason) -> BookingDecision:
        return cls(status=DecisionStatus.REJECTED, reason=reason)

    @property
    def accepted(self) -> bool:
        return self.status == DecisionStatus.ACCEPTED


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class ServiceLine(BaseModel):
    name: str = "Service"
    price: float = 0
    duration: str = "30 minutes"


class Customer(BaseModel):
    name: str = "Guest"
    email: str | None = None
    phone: str | None = None


class GroupMember(BaseModel):
    name: str | None = None
    category: str | None = None


class Appointment(BaseModel):
    id: str = Field(default_factory=_new_id)
    salon_id: str | None = None
    resource_id: str
    civil_date: date
    start_time: TimeValue
    end_time: TimeValue
    services: list[ServiceLine] = Field(default_factory=list)
    customer: Customer = Field(default_factory=Customer)
    status: AppointmentStatus = AppointmentStatus.PENDING
    booking_group_id: str | None = None
    member: GroupMember | None = None
    is_rescheduled: bool = False
    original_appointment_id: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _end_after_start(self) -> Appointment:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start_time, end=self.end_time)

    @property
    def occupies_schedule(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED


class TimelineEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    appointment_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: TimelineEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class BookingCheckRequest(BaseModel):
    resource_id: str
    civil_date: date
    start_time: str
    end_time: str


class AppointmentItem(BaseModel):
    """One appointment inside a (possibly group) booking request.

    Either ``end_time`` or ``duration`` fixes the end; ``end_time`` wins when
    both are given and ``duration`` defaults to 30 minutes when neither is.
    """

    salon_id: str | None = None
    resource_id: str
    civil_date: date
    start_time: str
    end_time: str | None = None
    duration: str | None = None
    service_name: str | None = None
    price: float = 0
    member_name: str | None = None
    member_category: str | None = None


class BookAppointmentsRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    appointments: list[AppointmentItem] = Field(min_length=1)
    is_group_booking: bool = False
    booking_group_id: str | None = None

    @model_validator(mode="after")
    def _contact_required(self) -> BookAppointmentsRequest:
        if not self.email and not self.phone:
            raise ValueError("Phone or email is required")
        return self


class BookAppointmentsResponse(BaseModel):
    booking_group_id: str
    appointments: list[Appointment]


class StatusUpdateRequest(BaseModel):
    status: AppointmentStatus


class RescheduleRequest(BaseModel):
    civil_date: date
    start_time: str
    end_time: str
    resource_id: str | None = None
    create_new: bool = False


class RescheduleResponse(BaseModel):
    appointment: Appointment
    old_appointment_deleted: bool


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedAppointments(BaseModel):
    data: list[Appointment]
    pagination: Pagination


class TimeSlotView(BaseModel):
    civil_date: date
    start: TimeValue
    end: TimeValue
    is_booked: bool


class TokenRequest(BaseModel):
    subject: str = Field(min_length=1)
    role: str = "customer"


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
