"""
Appointment status rules.

Pure functions only: nothing here touches the store. Callers persist the
result (see SweepService and AppointmentService).

State machine:
    upcoming -> active | delayed | cancelled | missed
    active   -> delayed | completed | cancelled | missed
    delayed  -> active | completed | cancelled | missed
    completed, cancelled, missed are terminal
"""
from datetime import date
from typing import Iterable, Set
from uuid import UUID

from tokenease.core.exceptions import InvalidTransition
from tokenease.db.models.appointment import Appointment, AppointmentStatus, OPEN_STATUSES

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.UPCOMING: frozenset({
        AppointmentStatus.ACTIVE,
        AppointmentStatus.DELAYED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.MISSED,
    }),
    AppointmentStatus.ACTIVE: frozenset({
        AppointmentStatus.DELAYED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.MISSED,
    }),
    AppointmentStatus.DELAYED: frozenset({
        AppointmentStatus.ACTIVE,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.MISSED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.MISSED: frozenset(),
}

def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(AppointmentStatus(current), frozenset())

def is_terminal(status: AppointmentStatus) -> bool:
    return not ALLOWED_TRANSITIONS[AppointmentStatus(status)]

def needs_missed(appointment: Appointment, today: date) -> bool:
    # Date granularity: an appointment later today is never missed yet
    return appointment.scheduled_date < today and appointment.status in OPEN_STATUSES

def sweep(today: date, appointments: Iterable[Appointment]) -> Set[UUID]:
    """Return the ids of appointments that must become missed as of `today`."""
    return {appt.id for appt in appointments if needs_missed(appt, today)}

def display_status(appointment: Appointment, today: date) -> AppointmentStatus:
    """Status to render, applying the sweep rule without persisting it."""
    if needs_missed(appointment, today):
        return AppointmentStatus.MISSED
    return AppointmentStatus(appointment.status)

def transition(appointment: Appointment, target: AppointmentStatus) -> Appointment:
    current = AppointmentStatus(appointment.status)
    if not can_transition(current, target):
        raise InvalidTransition(current.value, AppointmentStatus(target).value)
    appointment.status = AppointmentStatus(target)
    return appointment

def cancel(appointment: Appointment) -> Appointment:
    return transition(appointment, AppointmentStatus.CANCELLED)

def complete(appointment: Appointment) -> Appointment:
    return transition(appointment, AppointmentStatus.COMPLETED)

def activate(appointment: Appointment) -> Appointment:
    return transition(appointment, AppointmentStatus.ACTIVE)

def delay(appointment: Appointment) -> Appointment:
    return transition(appointment, AppointmentStatus.DELAYED)
