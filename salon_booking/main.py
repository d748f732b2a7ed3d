"""FastAPI application: entry point for the salon booking service."""

from __future__ import annotations

import logging
import uuid
from datetime import date

from fastapi import FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from salon_booking.config import settings
from salon_booking.domain.bus import EventBus
from salon_booking.domain.errors import (
    AppointmentNotFound,
    InvalidTimeFormat,
    StoreUnavailable,
    TokenError,
)
from salon_booking.domain.events import (
    AppointmentBooked,
    AppointmentCancelled,
    AppointmentRescheduled,
    AppointmentStatusChanged,
)
from salon_booking.domain.handlers import HandlerRegistry
from salon_booking.domain.models import (
    Appointment,
    AppointmentItem,
    AppointmentStatus,
    BookAppointmentsRequest,
    BookAppointmentsResponse,
    BookingCheckRequest,
    BookingDecision,
    CommitResult,
    Customer,
    GroupMember,
    Interval,
    PaginatedAppointments,
    RejectionReason,
    RescheduleRequest,
    RescheduleResponse,
    ServiceLine,
    StatusUpdateRequest,
    TimelineEntry,
    TimeSlotView,
    TokenRequest,
    TokenResponse,
)
from salon_booking.repos.memory import AppointmentRepository, TimelineRepository
from salon_booking.services.booking import BookingGate
from salon_booking.services.clock import Ordering, compare, parse_time, to_minutes
from salon_booking.services.durations import compute_end_time, duration_to_minutes
from salon_booking.services.pagination import paginate
from salon_booking.services.slots import build_slot_grid
from salon_booking.services.tokens import bearer_token, generate_token, verify_token

logger = logging.getLogger("salon_booking")
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(title="Salon Booking Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
appointment_repo = AppointmentRepository()
timeline_repo = TimelineRepository()
booking_gate = BookingGate(appointment_repo)

handler_registry = HandlerRegistry(
    bus=event_bus,
    appointment_repo=appointment_repo,
    timeline_repo=timeline_repo,
)

UNPAGINATED_LIMIT = 100


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(
    request: Request, exc: StoreUnavailable
) -> JSONResponse:
    logger.error(
        "Schedule store unavailable on %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return JSONResponse(
        status_code=503, content={"detail": "Schedule store unavailable"}
    )


@app.exception_handler(AppointmentNotFound)
async def appointment_not_found_handler(
    request: Request, exc: AppointmentNotFound
) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Appointment not found"})


def _rejection(reason: RejectionReason) -> HTTPException:
    status_code = 409 if reason == RejectionReason.CONFLICTS_WITH_EXISTING else 400
    return HTTPException(status_code=status_code, detail=reason.value)


def _get_or_404(appointment_id: str) -> Appointment:
    appointment = appointment_repo.get(appointment_id)
    if appointment is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appointment


def _end_text(item: AppointmentItem) -> str:
    if item.end_time is not None:
        return item.end_time
    try:
        return compute_end_time(
            item.start_time, duration_to_minutes(item.duration or "30 minutes")
        )
    except InvalidTimeFormat:
        raise _rejection(RejectionReason.INVALID_TIME_FORMAT)


def _length(interval: Interval) -> int:
    return to_minutes(interval.end) - to_minutes(interval.start)


def _rollback(created: list[Appointment]) -> None:
    for appointment in created:
        appointment_repo.delete(appointment.id)
    if created:
        logger.info("Rolled back %d appointment(s) of a failed booking", len(created))


# ── Routes ────────────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/auth/token", response_model=TokenResponse)
def issue_token(body: TokenRequest) -> TokenResponse:
    """Mint a signed session token for a subject and role."""
    token = generate_token({"sub": body.subject, "role": body.role})
    return TokenResponse(access_token=token)


@app.get("/auth/verify")
def verify_session(authorization: str | None = Header(default=None)) -> dict:
    """Verify the bearer token and return its claims."""
    token = bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Access token required")
    try:
        claims = verify_token(token)
    except TokenError:
        raise HTTPException(status_code=403, detail="Invalid or expired token")
    return {"valid": True, "claims": claims}


@app.post("/appointments/check", response_model=BookingDecision)
def check_booking(payload: BookingCheckRequest) -> BookingDecision:
    """Run the booking gate without committing anything."""
    return booking_gate.try_book(
        payload.resource_id, payload.civil_date, payload.start_time, payload.end_time
    )


@app.post(
    "/appointments", response_model=BookAppointmentsResponse, status_code=201
)
def book_appointments(payload: BookAppointmentsRequest) -> BookAppointmentsResponse:
    """Book every requested appointment, or none of them.

    Each item passes the booking gate and is then committed; a rejection at
    either step rolls back the items already committed by this request.
    """
    group_id = payload.booking_group_id or f"group-{uuid.uuid4().hex[:12]}"
    created: list[Appointment] = []

    try:
        for item in payload.appointments:
            end_text = _end_text(item)
            decision = booking_gate.try_book(
                item.resource_id, item.civil_date, item.start_time, end_text
            )
            if not decision.accepted:
                logger.info(
                    "Booking rejected for %s on %s %s-%s: %s",
                    item.resource_id,
                    item.civil_date,
                    item.start_time,
                    end_text,
                    decision.reason,
                )
                raise _rejection(decision.reason)

            appointment = Appointment(
                salon_id=item.salon_id,
                resource_id=item.resource_id,
                civil_date=item.civil_date,
                start_time=decision.interval.start,
                end_time=decision.interval.end,
                services=[
                    ServiceLine(
                        name=item.service_name or "Service",
                        price=item.price,
                        duration=item.duration
                        or f"{_length(decision.interval)} minutes",
                    )
                ],
                customer=Customer(
                    name=item.member_name or payload.name or "Guest",
                    email=payload.email,
                    phone=payload.phone,
                ),
                booking_group_id=group_id,
                member=(
                    GroupMember(name=item.member_name, category=item.member_category)
                    if payload.is_group_booking
                    else None
                ),
            )
            if appointment_repo.commit(appointment) == CommitResult.REJECTED_BY_STORE:
                raise _rejection(RejectionReason.CONFLICTS_WITH_EXISTING)
            created.append(appointment)
    except (HTTPException, StoreUnavailable):
        _rollback(created)
        raise

    for appointment in created:
        event_bus.publish(
            AppointmentBooked(appointment_id=appointment.id, booking_group_id=group_id)
        )

    logger.info("Booked %d appointment(s) in %s", len(created), group_id)
    return BookAppointmentsResponse(booking_group_id=group_id, appointments=created)


@app.get(
    "/appointments", response_model=list[Appointment] | PaginatedAppointments
)
def list_appointments(
    email: str | None = None,
    phone: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> list[Appointment] | PaginatedAppointments:
    """List a customer's appointments, newest first.

    Without ``page``/``limit`` the result is a bare list capped at 100 items;
    with either, a page plus pagination metadata.
    """
    appointments = appointment_repo.list_for_customer(email=email, phone=phone)
    if page is None and limit is None:
        return appointments[:UNPAGINATED_LIMIT]
    return paginate(appointments, page, limit)


@app.get(
    "/appointments/salon/{salon_id}", response_model=PaginatedAppointments
)
def list_salon_appointments(
    salon_id: str,
    civil_date: date | None = None,
    resource_id: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> PaginatedAppointments:
    """List a salon's appointments by date and start time, one page at a time."""
    appointments = appointment_repo.list_for_salon(
        salon_id, civil_date=civil_date, resource_id=resource_id
    )
    return paginate(appointments, page, limit)


@app.get("/appointments/{appointment_id}", response_model=Appointment)
def get_appointment(appointment_id: str) -> Appointment:
    return _get_or_404(appointment_id)


@app.get(
    "/appointments/{appointment_id}/timeline", response_model=list[TimelineEntry]
)
def get_timeline(appointment_id: str) -> list[TimelineEntry]:
    """Return the appointment's history, oldest first."""
    return timeline_repo.list_for_appointment(appointment_id)


@app.delete("/appointments/{appointment_id}")
def delete_appointment(appointment_id: str) -> dict:
    """Delete an appointment and free its interval."""
    removed = appointment_repo.delete(appointment_id)
    if removed is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    event_bus.publish(AppointmentCancelled(appointment_id=appointment_id, deleted=True))
    return {"status": "deleted", "appointment_id": appointment_id}


@app.patch("/appointments/{appointment_id}/status", response_model=Appointment)
def update_status(appointment_id: str, body: StatusUpdateRequest) -> Appointment:
    old_status = _get_or_404(appointment_id).status
    result, appointment = appointment_repo.update_status(appointment_id, body.status)
    if result == CommitResult.REJECTED_BY_STORE:
        raise _rejection(RejectionReason.CONFLICTS_WITH_EXISTING)

    if old_status != body.status:
        event_bus.publish(
            AppointmentStatusChanged(
                appointment_id=appointment_id,
                old_status=old_status,
                new_status=body.status,
            )
        )
        if body.status == AppointmentStatus.CANCELLED:
            event_bus.publish(AppointmentCancelled(appointment_id=appointment_id))
    return appointment


@app.patch(
    "/appointments/{appointment_id}/reschedule", response_model=RescheduleResponse
)
def reschedule_appointment(
    appointment_id: str, body: RescheduleRequest
) -> RescheduleResponse:
    """Move an appointment, keeping its status.

    The gate runs with the appointment itself left out of the schedule, so a
    move that only overlaps its own old slot is accepted.
    """
    current = _get_or_404(appointment_id)
    previous = {
        "resource_id": current.resource_id,
        "civil_date": current.civil_date.isoformat(),
        "start_time": str(current.start_time),
        "end_time": str(current.end_time),
    }
    resource_id = body.resource_id or current.resource_id

    decision = booking_gate.try_book(
        resource_id,
        body.civil_date,
        body.start_time,
        body.end_time,
        exclude_appointment_id=appointment_id,
    )
    if not decision.accepted:
        raise _rejection(decision.reason)

    result, moved = appointment_repo.reschedule(
        appointment_id,
        resource_id,
        body.civil_date,
        decision.interval,
        create_new=body.create_new,
    )
    if result == CommitResult.REJECTED_BY_STORE:
        raise _rejection(RejectionReason.CONFLICTS_WITH_EXISTING)

    event_bus.publish(
        AppointmentRescheduled(
            appointment_id=moved.id,
            previous=previous,
            original_appointment_id=appointment_id if body.create_new else None,
        )
    )
    return RescheduleResponse(
        appointment=moved, old_appointment_deleted=body.create_new
    )


@app.get("/timeslots", response_model=list[TimeSlotView])
def list_timeslots(
    resource_id: str,
    civil_date: date,
    days: int = Query(default=1, ge=1, le=7),
    open_time: str | None = None,
    close_time: str | None = None,
    slot_minutes: int | None = Query(default=None, ge=1, le=24 * 60),
) -> list[TimeSlotView]:
    """Return the slot grid for one resource, one or more days from *civil_date*."""
    try:
        opens = parse_time(open_time or settings.default_open_time)
        closes = parse_time(close_time or settings.default_close_time)
    except InvalidTimeFormat:
        raise _rejection(RejectionReason.INVALID_TIME_FORMAT)
    if compare(opens, closes) != Ordering.LESS:
        raise HTTPException(
            status_code=400, detail="open_time must be before close_time"
        )

    return build_slot_grid(
        appointment_repo,
        resource_id,
        civil_date,
        days,
        opens,
        closes,
        slot_minutes or settings.slot_minutes,
    )
