from datetime import date, time
from uuid import uuid4

import pytest

from tokenease.core.exceptions import InvalidTransition
from tokenease.db.models import Appointment, AppointmentStatus
from tokenease.services import transitions

TODAY = date(2024, 8, 10)

def appt(day: date, status: AppointmentStatus) -> Appointment:
    return Appointment(
        id=uuid4(),
        patient_id=uuid4(),
        doctor_id=uuid4(),
        scheduled_date=day,
        scheduled_time=time(10, 30),
        time_display="10:30 - 10:45",
        token_number=4,
        status=status,
    )

def test_past_upcoming_appointment_is_swept():
    stale = appt(date(2024, 8, 1), AppointmentStatus.UPCOMING)
    assert transitions.sweep(TODAY, [stale]) == {stale.id}

@pytest.mark.parametrize("status", [AppointmentStatus.UPCOMING, AppointmentStatus.ACTIVE, AppointmentStatus.DELAYED])
def test_every_open_status_is_swept_once_the_day_has_passed(status):
    stale = appt(TODAY.replace(day=9), status)
    assert transitions.sweep(TODAY, [stale]) == {stale.id}

@pytest.mark.parametrize("day", [TODAY, date(2024, 8, 11), date(2025, 1, 1)])
def test_today_and_future_appointments_are_never_swept(day):
    records = [appt(day, status) for status in AppointmentStatus]
    assert transitions.sweep(TODAY, records) == set()

@pytest.mark.parametrize("status", [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.MISSED])
def test_terminal_appointments_are_left_alone(status):
    assert transitions.sweep(TODAY, [appt(date(2024, 7, 1), status)]) == set()

def test_sweep_is_idempotent():
    records = [
        appt(date(2024, 8, 1), AppointmentStatus.UPCOMING),
        appt(date(2024, 8, 9), AppointmentStatus.DELAYED),
        appt(TODAY, AppointmentStatus.UPCOMING),
    ]
    first = transitions.sweep(TODAY, records)
    assert len(first) == 2
    for record in records:
        if record.id in first:
            record.status = AppointmentStatus.MISSED
    assert transitions.sweep(TODAY, records) == set()

def test_sweep_of_nothing_is_empty():
    assert transitions.sweep(TODAY, []) == set()

def test_display_status_applies_the_sweep_without_mutating():
    stale = appt(date(2024, 8, 1), AppointmentStatus.ACTIVE)
    assert transitions.display_status(stale, TODAY) == AppointmentStatus.MISSED
    assert stale.status == AppointmentStatus.ACTIVE
    fresh = appt(TODAY, AppointmentStatus.DELAYED)
    assert transitions.display_status(fresh, TODAY) == AppointmentStatus.DELAYED

@pytest.mark.parametrize("status", [AppointmentStatus.UPCOMING, AppointmentStatus.ACTIVE, AppointmentStatus.DELAYED])
def test_cancel_from_open_status(status):
    record = transitions.cancel(appt(TODAY, status))
    assert record.status == AppointmentStatus.CANCELLED

@pytest.mark.parametrize("status", [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.MISSED])
def test_cancel_from_terminal_status_fails(status):
    record = appt(TODAY, status)
    with pytest.raises(InvalidTransition):
        transitions.cancel(record)
    assert record.status == status

def test_complete_requires_the_patient_to_be_in_service():
    with pytest.raises(InvalidTransition):
        transitions.complete(appt(TODAY, AppointmentStatus.UPCOMING))
    assert transitions.complete(appt(TODAY, AppointmentStatus.ACTIVE)).status == AppointmentStatus.COMPLETED
    assert transitions.complete(appt(TODAY, AppointmentStatus.DELAYED)).status == AppointmentStatus.COMPLETED

def test_delayed_can_resume():
    record = transitions.delay(appt(TODAY, AppointmentStatus.ACTIVE))
    assert transitions.activate(record).status == AppointmentStatus.ACTIVE

def test_terminal_statuses_have_no_way_out():
    for status in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.MISSED):
        assert transitions.is_terminal(status)
        for target in AppointmentStatus:
            assert not transitions.can_transition(status, target)
