from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tokenease.core.config import settings
from tokenease.core.exceptions import BookingRejected, InvalidTransition, StoreUnavailable
from tokenease.core.logger import logger
from tokenease.core.session_context import SessionContext
from tokenease.db.models import Appointment, AppointmentStatus, Doctor, SlotConfig, User
from tokenease.db.models.appointment import OPEN_STATUSES, TERMINAL_STATUSES
from tokenease.db.stores import AppointmentStore, PenaltyStore, QueueStateStore, UserStore, commit_or_raise
from tokenease.schemas.appointment import (
    AdminAppointmentList,
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusResponse,
    DashboardResponse,
    DashboardSection,
    DoctorAppointmentCount,
    DoctorBreakdownSection,
    TokenProgressResponse,
)
from tokenease.schemas.doctor import WEEKDAYS
from tokenease.services import penalty_rules, transitions
from tokenease.services.doctor_service import slot_label
from tokenease.services.sweep_service import SweepService
from tokenease.services.token_estimator import token_progress

# A missed appointment still counts as the patient's booking for that day
DAILY_LIMIT_STATUSES = OPEN_STATUSES + (AppointmentStatus.MISSED,)

class AppointmentService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = AppointmentStore(session)
        self._doctors: Dict[UUID, Optional[Doctor]] = {}
        self._patients: Dict[UUID, Optional[User]] = {}

    async def _doctor(self, doctor_id: UUID) -> Optional[Doctor]:
        if doctor_id not in self._doctors:
            self._doctors[doctor_id] = await self.session.get(Doctor, doctor_id)
        return self._doctors[doctor_id]

    async def _patient(self, patient_id: UUID) -> Optional[User]:
        if patient_id not in self._patients:
            self._patients[patient_id] = await self.session.get(User, patient_id)
        return self._patients[patient_id]

    async def to_response(self, appointment: Appointment, today: Optional[date] = None) -> AppointmentResponse:
        doctor = await self._doctor(appointment.doctor_id)
        patient = await self._patient(appointment.patient_id)
        status = transitions.display_status(appointment, today) if today else appointment.status
        return AppointmentResponse(
            id=appointment.id,
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            doctor_name=doctor.name if doctor else None,
            patient_name=patient.name if patient else None,
            specialization=appointment.specialization,
            scheduled_date=appointment.scheduled_date,
            scheduled_time=appointment.scheduled_time,
            time_display=appointment.time_display,
            token_number=appointment.token_number,
            status=status,
            notes=appointment.notes,
            created_at=appointment.created_at
        )

    async def book(self, context: SessionContext, data: AppointmentCreate, today: date) -> Appointment:
        # 1. Penalty guard
        account = await PenaltyStore(self.session).get_account(context.user_id)
        if not penalty_rules.can_book(account, today):
            until = f" until {account.blocked_until.isoformat()}" if account.blocked_until else ""
            raise BookingRejected("account_blocked", f"Your account is blocked for bookings{until}.")

        if data.date < today:
            raise BookingRejected("date_in_past", "Appointments cannot be booked for past dates.")

        # 2. Validate doctor and slot
        doctor = await self._doctor(data.doctor_id)
        if not doctor or not doctor.is_active:
            raise HTTPException(status_code=404, detail="Doctor not found")

        slot_config = await self.session.get(SlotConfig, data.slot_config_id)
        start = data.start_time.strftime("%H:%M")
        if (
            not slot_config
            or slot_config.doctor_id != doctor.id
            or WEEKDAYS[data.date.weekday()] not in slot_config.days_of_week
            or start not in slot_config.start_times
        ):
            raise BookingRejected("slot_mismatch", "The selected slot is not offered on that day.")

        # 3. One booking per patient per day
        if await self.store.has_booking_on(context.user_id, data.date, DAILY_LIMIT_STATUSES):
            raise BookingRejected("duplicate_booking", "You can only book one appointment per day.")

        # 4. Capacity
        taken = await self.store.count_in_slot(doctor.id, data.date, slot_config.id, data.start_time)
        if taken >= slot_config.capacity_per_slot:
            raise BookingRejected("slot_full", "Selected time slot is full. Please choose another.")

        # 5. Assign token
        next_token = await self.store.next_token(doctor.id, data.date)

        appointment = Appointment(
            patient_id=context.user_id,
            doctor_id=doctor.id,
            slot_config_id=slot_config.id,
            scheduled_date=data.date,
            scheduled_time=data.start_time,
            time_display=slot_label(start, slot_config.slot_minutes),
            token_number=next_token,
            status=AppointmentStatus.UPCOMING,
            notes=data.notes,
            specialization=doctor.specialization
        )
        self.store.add(appointment)
        await commit_or_raise(self.session, "book_appointment")
        await self.session.refresh(appointment)
        logger.info(f"Booked appointment {appointment.id} token {next_token} with doctor {doctor.id} on {data.date}")
        return appointment

    async def get_appointment(self, appointment_id: UUID, context: SessionContext) -> Appointment:
        appointment = await self.store.get(appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        if not context.is_admin and appointment.patient_id != context.user_id:
            # Same answer as a missing record
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    async def list_for_patient(self, patient_id: UUID, today: date) -> List[AppointmentResponse]:
        appointments = await self.store.query_for_patient(patient_id)
        return [await self.to_response(appt, today) for appt in appointments]

    async def get_status(self, appointment: Appointment, today: date) -> AppointmentStatusResponse:
        status = transitions.display_status(appointment, today)
        progress = None
        if status in OPEN_STATUSES and appointment.scheduled_date == today:
            doctor = await self._doctor(appointment.doctor_id)
            avg = (doctor.avg_minutes_per_token if doctor else None) or settings.AVG_MINUTES_PER_TOKEN
            queue_state = await QueueStateStore(self.session).get(appointment.doctor_id, appointment.scheduled_date)
            result = token_progress(appointment, queue_state, avg)
            progress = TokenProgressResponse(
                current_serving=result.current_serving,
                wait_minutes=result.wait_minutes,
                wait_label=result.wait_label,
                is_your_turn=result.is_your_turn
            )
        return AppointmentStatusResponse(
            appointment=await self.to_response(appointment, today),
            status=status,
            progress=progress
        )

    async def cancel(self, appointment_id: UUID, context: SessionContext, today: date) -> Appointment:
        appointment = await self.get_appointment(appointment_id, context)
        # A stale open appointment is already missed, whatever the row says
        if transitions.needs_missed(appointment, today):
            raise InvalidTransition(AppointmentStatus.MISSED.value, AppointmentStatus.CANCELLED.value)
        transitions.cancel(appointment)
        self.store.add(appointment)
        await commit_or_raise(self.session, "cancel_appointment")
        logger.info(f"Appointment {appointment.id} cancelled by {context.role} {context.user_id}")
        return appointment

    async def apply_transition(
        self, appointment_id: UUID, target: AppointmentStatus, context: SessionContext, today: date
    ) -> Appointment:
        appointment = await self.get_appointment(appointment_id, context)
        if transitions.needs_missed(appointment, today):
            raise InvalidTransition(AppointmentStatus.MISSED.value, AppointmentStatus(target).value)
        previous = appointment.status
        transitions.transition(appointment, target)
        self.store.add(appointment)
        await commit_or_raise(self.session, "update_appointment_status")
        logger.info(f"Appointment {appointment.id}: {AppointmentStatus(previous).value} -> {AppointmentStatus(target).value}")
        return appointment

    async def admin_list(self, today: date, tab: str = "all", search: Optional[str] = None) -> AdminAppointmentList:
        # fetch -> sweep -> fetch; a failed sweep only adds a warning
        report = await SweepService(self.session).run(today)
        warnings = [report.warning] if report.warning else []

        try:
            appointments = await self.store.query_all()
        except StoreUnavailable as exc:
            logger.warning(f"Could not load appointments: {exc}")
            return AdminAppointmentList(appointments=[], swept=report.swept, warnings=warnings, error="Could not fetch appointments.")

        responses = [await self.to_response(appt, today) for appt in appointments]

        if tab == "upcoming":
            responses = [r for r in responses if r.status in OPEN_STATUSES]
            responses.sort(key=lambda r: (r.scheduled_date, r.scheduled_time))
        elif tab == "past":
            responses = [r for r in responses if r.status in TERMINAL_STATUSES]

        if search:
            needle = search.lower()
            responses = [
                r for r in responses
                if needle in (r.patient_name or "").lower()
                or needle in (r.doctor_name or "").lower()
                or needle in str(r.id)
            ]

        return AdminAppointmentList(appointments=responses, swept=report.swept, warnings=warnings)

    async def dashboard(self, today: date) -> DashboardResponse:
        report = await SweepService(self.session).run(today)

        try:
            patients_section = DashboardSection(value=await UserStore(self.session).count_by_role("patient"))
        except StoreUnavailable as exc:
            logger.warning(f"Dashboard patients count failed: {exc}")
            patients_section = DashboardSection(error=True)

        try:
            penalties_section = DashboardSection(value=await PenaltyStore(self.session).count_penalized())
        except StoreUnavailable as exc:
            logger.warning(f"Dashboard penalties count failed: {exc}")
            penalties_section = DashboardSection(error=True)

        try:
            by_doctor = DoctorBreakdownSection(items=[
                DoctorAppointmentCount(doctor_id=doctor_id, name=name, value=count)
                for doctor_id, name, count in await self.store.count_by_doctor()
            ])
        except StoreUnavailable as exc:
            logger.warning(f"Dashboard per-doctor breakdown failed: {exc}")
            by_doctor = DoctorBreakdownSection(error=True)

        return DashboardResponse(
            total_patients=patients_section,
            completed_appointments=await self._count(AppointmentStatus.COMPLETED),
            visited_today=await self._count(AppointmentStatus.COMPLETED, today),
            upcoming_today=await self._count(AppointmentStatus.UPCOMING, today),
            active_penalties=penalties_section,
            appointments_by_doctor=by_doctor,
            swept=report.swept,
            warnings=[report.warning] if report.warning else []
        )

    async def _count(self, status: AppointmentStatus, day: Optional[date] = None) -> DashboardSection:
        try:
            return DashboardSection(value=await self.store.count_by_status(status, day))
        except StoreUnavailable as exc:
            logger.warning(f"Dashboard count for {status.value} failed: {exc}")
            return DashboardSection(error=True)
