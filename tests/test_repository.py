"""Tests for the in-memory appointment store and its commit-time checks."""

from __future__ import annotations

import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from salon_booking.domain.errors import AppointmentNotFound
from salon_booking.domain.models import (
    Appointment,
    AppointmentStatus,
    CommitResult,
    Customer,
    Interval,
    TimelineEntry,
    TimelineEntryType,
)
from salon_booking.repos.memory import AppointmentRepository, TimelineRepository
from salon_booking.services.booking import BookingGate
from salon_booking.services.conflicts import overlaps

RESOURCE = "stylist-1"
DAY = date(2026, 3, 14)


@pytest.fixture()
def repo():
    return AppointmentRepository()


def _appointment(start: str, end: str, **overrides) -> Appointment:
    defaults = dict(
        resource_id=RESOURCE,
        civil_date=DAY,
        start_time=start,
        end_time=end,
        customer=Customer(name="Ada", email="ada@example.com"),
    )
    defaults.update(overrides)
    return Appointment(**defaults)


def _iv(start: str, end: str) -> Interval:
    return Interval(start=start, end=end)


# ---------------------------------------------------------------------------
# commit / read_schedule
# ---------------------------------------------------------------------------


def test_commit_then_read_schedule(repo):
    assert repo.commit(_appointment("10:00", "11:00")) == CommitResult.COMMITTED
    assert repo.read_schedule(RESOURCE, DAY) == [_iv("10:00", "11:00")]


def test_schedule_is_keyed_by_resource_and_date(repo):
    repo.commit(_appointment("10:00", "11:00"))
    assert repo.read_schedule("stylist-2", DAY) == []
    assert repo.read_schedule(RESOURCE, DAY + timedelta(days=1)) == []


def test_overlapping_commit_rejected_by_store(repo):
    repo.commit(_appointment("10:00", "11:00"))
    late = _appointment("10:30", "11:30")
    assert repo.commit(late) == CommitResult.REJECTED_BY_STORE
    assert repo.get(late.id) is None


def test_adjacent_commit_accepted(repo):
    repo.commit(_appointment("10:00", "11:00"))
    assert repo.commit(_appointment("11:00", "11:05")) == CommitResult.COMMITTED


def test_store_closes_check_then_commit_race(repo):
    """Two candidates that both pass the gate on the same snapshot cannot both land."""
    gate = BookingGate(repo)
    first = gate.try_book(RESOURCE, DAY, "10:00", "11:00")
    second = gate.try_book(RESOURCE, DAY, "10:30", "11:30")
    assert first.accepted and second.accepted

    assert repo.commit(_appointment("10:00", "11:00")) == CommitResult.COMMITTED
    assert repo.commit(_appointment("10:30", "11:30")) == CommitResult.REJECTED_BY_STORE


def test_concurrent_commits_never_overlap(repo):
    candidates = [
        _appointment(start, end)
        for start, end in [
            ("09:00", "10:00"),
            ("09:30", "10:30"),
            ("09:45", "10:15"),
            ("10:00", "11:00"),
            ("10:30", "11:30"),
            ("09:00", "09:05"),
        ]
        * 4
    ]
    barrier = threading.Barrier(len(candidates))

    def commit(appointment):
        barrier.wait()
        repo.commit(appointment)

    threads = [threading.Thread(target=commit, args=(a,)) for a in candidates]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    schedule = repo.read_schedule(RESOURCE, DAY)
    assert schedule
    for i, a in enumerate(schedule):
        for b in schedule[i + 1 :]:
            assert not overlaps(a, b)


def test_read_schedule_excludes_appointment(repo):
    kept = _appointment("09:00", "10:00")
    moving = _appointment("10:00", "11:00")
    repo.commit(kept)
    repo.commit(moving)
    assert repo.read_schedule(RESOURCE, DAY, exclude_appointment_id=moving.id) == [
        _iv("09:00", "10:00")
    ]


def test_cancelled_appointment_frees_interval(repo):
    appointment = _appointment("10:00", "11:00")
    repo.commit(appointment)
    result, _ = repo.update_status(appointment.id, AppointmentStatus.CANCELLED)
    assert result == CommitResult.COMMITTED
    assert repo.read_schedule(RESOURCE, DAY) == []
    assert repo.commit(_appointment("10:00", "11:00")) == CommitResult.COMMITTED


def test_reactivating_cancelled_appointment_rechecks(repo):
    appointment = _appointment("10:00", "11:00")
    repo.commit(appointment)
    repo.update_status(appointment.id, AppointmentStatus.CANCELLED)
    repo.commit(_appointment("10:30", "11:30"))

    result, stored = repo.update_status(appointment.id, AppointmentStatus.CONFIRMED)
    assert result == CommitResult.REJECTED_BY_STORE
    assert stored.status == AppointmentStatus.CANCELLED


def test_update_status_missing_raises(repo):
    with pytest.raises(AppointmentNotFound):
        repo.update_status("missing", AppointmentStatus.CONFIRMED)


def test_delete_frees_interval(repo):
    appointment = _appointment("10:00", "11:00")
    repo.commit(appointment)
    assert repo.delete(appointment.id) is appointment
    assert repo.delete(appointment.id) is None
    assert repo.read_schedule(RESOURCE, DAY) == []


# ---------------------------------------------------------------------------
# reschedule
# ---------------------------------------------------------------------------


def test_reschedule_onto_own_old_slot(repo):
    appointment = _appointment("10:00", "11:00", status=AppointmentStatus.CONFIRMED)
    repo.commit(appointment)

    result, moved = repo.reschedule(
        appointment.id, RESOURCE, DAY, _iv("10:30", "11:30")
    )
    assert result == CommitResult.COMMITTED
    assert moved.id == appointment.id
    assert moved.is_rescheduled is True
    assert moved.status == AppointmentStatus.CONFIRMED
    assert repo.read_schedule(RESOURCE, DAY) == [_iv("10:30", "11:30")]


def test_reschedule_into_conflict_rejected(repo):
    appointment = _appointment("09:00", "10:00")
    repo.commit(appointment)
    repo.commit(_appointment("11:00", "12:00"))

    result, stored = repo.reschedule(
        appointment.id, RESOURCE, DAY, _iv("11:30", "12:30")
    )
    assert result == CommitResult.REJECTED_BY_STORE
    assert stored.interval == _iv("09:00", "10:00")


def test_reschedule_create_new_replaces_appointment(repo):
    appointment = _appointment("09:00", "10:00", status=AppointmentStatus.CONFIRMED)
    repo.commit(appointment)
    next_day = DAY + timedelta(days=1)

    result, moved = repo.reschedule(
        appointment.id, "stylist-2", next_day, _iv("14:00", "15:00"), create_new=True
    )
    assert result == CommitResult.COMMITTED
    assert moved.id != appointment.id
    assert moved.original_appointment_id == appointment.id
    assert moved.status == AppointmentStatus.CONFIRMED
    assert repo.get(appointment.id) is None
    assert repo.read_schedule(RESOURCE, DAY) == []
    assert repo.read_schedule("stylist-2", next_day) == [_iv("14:00", "15:00")]


def test_reschedule_missing_raises(repo):
    with pytest.raises(AppointmentNotFound):
        repo.reschedule("missing", RESOURCE, DAY, _iv("10:00", "11:00"))


def _interleave_before_first_lock(repo, monkeypatch, step):
    """Run *step* once, just before the next caller takes its first key lock."""
    real_lock_for = repo._lock_for
    taken: list = []

    def lock_for(key):
        if not taken:
            taken.append(key)
            step()
        else:
            taken.append(key)
        return real_lock_for(key)

    monkeypatch.setattr(repo, "_lock_for", lock_for)
    return taken


def test_reactivation_rechecks_where_the_appointment_now_is(repo, monkeypatch):
    appointment = _appointment(
        "11:00", "12:00", resource_id="stylist-1", status=AppointmentStatus.CANCELLED
    )
    repo.commit(appointment)

    def move_then_fill_freed_slot():
        repo.reschedule(appointment.id, "stylist-2", DAY, _iv("11:00", "12:00"))
        repo.commit(_appointment("11:00", "12:00", resource_id="stylist-2"))

    _interleave_before_first_lock(repo, monkeypatch, move_then_fill_freed_slot)

    result, stored = repo.update_status(appointment.id, AppointmentStatus.CONFIRMED)
    assert result == CommitResult.REJECTED_BY_STORE
    assert stored.status == AppointmentStatus.CANCELLED
    assert repo.read_schedule("stylist-2", DAY) == [_iv("11:00", "12:00")]


def test_reschedule_locks_the_key_the_appointment_now_holds(repo, monkeypatch):
    appointment = _appointment("09:00", "10:00")
    repo.commit(appointment)

    def move_elsewhere():
        repo.reschedule(appointment.id, "stylist-2", DAY, _iv("09:00", "10:00"))

    taken = _interleave_before_first_lock(repo, monkeypatch, move_elsewhere)

    result, moved = repo.reschedule(
        appointment.id, RESOURCE, DAY, _iv("14:00", "15:00")
    )
    assert result == CommitResult.COMMITTED
    assert (moved.resource_id, str(moved.start_time)) == (RESOURCE, "14:00")
    # The retry holds the lock of the key the appointment was moved to.
    assert ("stylist-2", DAY) in taken[-2:]
    assert repo.read_schedule("stylist-2", DAY) == []


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def test_list_for_customer_newest_first(repo):
    base = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    older = _appointment("09:00", "10:00", created_at=base)
    newer = _appointment("10:00", "11:00", created_at=base + timedelta(hours=1))
    other = _appointment(
        "11:00",
        "12:00",
        customer=Customer(name="Bo", phone="555-0100"),
    )
    for appointment in (older, newer, other):
        repo.commit(appointment)

    assert [a.id for a in repo.list_for_customer(email="ada@example.com")] == [
        newer.id,
        older.id,
    ]
    assert [a.id for a in repo.list_for_customer(phone="555-0100")] == [other.id]
    assert len(repo.list_for_customer()) == 3


def test_list_for_salon_in_calendar_order_with_filters(repo):
    later_day = _appointment(
        "09:00", "10:00", salon_id="salon-1", civil_date=date(2026, 3, 15)
    )
    afternoon = _appointment("14:00", "15:00", salon_id="salon-1")
    morning = _appointment(
        "09:00", "10:00", salon_id="salon-1", resource_id="chair-2"
    )
    elsewhere = _appointment("08:00", "09:00", salon_id="salon-2")
    for appointment in (later_day, afternoon, morning, elsewhere):
        repo.commit(appointment)

    assert [a.id for a in repo.list_for_salon("salon-1")] == [
        morning.id,
        afternoon.id,
        later_day.id,
    ]
    assert [a.id for a in repo.list_for_salon("salon-1", civil_date=DAY)] == [
        morning.id,
        afternoon.id,
    ]
    assert [a.id for a in repo.list_for_salon("salon-1", resource_id="chair-2")] == [
        morning.id
    ]


def test_timeline_sorted_by_timestamp():
    timeline = TimelineRepository()
    base = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    late = TimelineEntry(
        appointment_id="a", type=TimelineEntryType.CANCELLED, timestamp=base
    )
    early = TimelineEntry(
        appointment_id="a",
        type=TimelineEntryType.BOOKED,
        timestamp=base - timedelta(minutes=5),
    )
    timeline.add(late)
    timeline.add(early)
    timeline.add(TimelineEntry(appointment_id="b", type=TimelineEntryType.BOOKED))

    assert timeline.list_for_appointment("a") == [early, late]
