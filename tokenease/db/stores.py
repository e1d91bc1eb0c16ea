"""
Store adapters over an AsyncSession.

Writes are staged on the session and never committed here; the calling
service decides the transaction boundary so that a batch (e.g. a sweep plus
its strikes) commits as one unit. Driver errors surface as StoreUnavailable.
"""
from datetime import date, time
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func, or_

from tokenease.core.exceptions import StoreUnavailable
from tokenease.db.models import Appointment, AppointmentStatus, Doctor, DoctorQueueState, PenalizedAccount, User

async def commit_or_raise(session: AsyncSession, operation: str) -> None:
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StoreUnavailable(operation, exc) from exc

class AppointmentStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _all(self, stmt, operation: str) -> List[Appointment]:
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(operation, exc) from exc
        return list(result.scalars().all())

    async def _scalar(self, stmt, operation: str):
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(operation, exc) from exc
        return result.scalar()

    async def get(self, appointment_id: UUID) -> Optional[Appointment]:
        try:
            return await self.session.get(Appointment, appointment_id)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("get_appointment", exc) from exc

    def add(self, appointment: Appointment) -> None:
        self.session.add(appointment)

    async def query_by_date_before(self, day: date, statuses: Sequence[AppointmentStatus]) -> List[Appointment]:
        stmt = select(Appointment).where(
            Appointment.scheduled_date < day,
            Appointment.status.in_(list(statuses))
        )
        return await self._all(stmt, "query_by_date_before")

    async def batch_update_status(
        self,
        ids: Iterable[UUID],
        new_status: AppointmentStatus,
        only_from: Optional[Sequence[AppointmentStatus]] = None,
    ) -> int:
        ids = list(ids)
        if not ids:
            return 0
        stmt = update(Appointment).where(Appointment.id.in_(ids))
        # Guarding on the current status makes a repeated batch a no-op
        if only_from:
            stmt = stmt.where(Appointment.status.in_(list(only_from)))
        stmt = stmt.values(status=new_status).execution_options(synchronize_session="fetch")
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("batch_update_status", exc) from exc
        return result.rowcount or 0

    async def query_all(self) -> List[Appointment]:
        stmt = (
            select(Appointment)
            .order_by(Appointment.scheduled_date.desc(), Appointment.scheduled_time.desc())
            .execution_options(populate_existing=True)
        )
        return await self._all(stmt, "query_all")

    async def query_for_patient(self, patient_id: UUID) -> List[Appointment]:
        stmt = (
            select(Appointment)
            .where(Appointment.patient_id == patient_id)
            .order_by(Appointment.scheduled_date.desc(), Appointment.scheduled_time.desc())
        )
        return await self._all(stmt, "query_for_patient")

    async def has_booking_on(self, patient_id: UUID, day: date, statuses: Sequence[AppointmentStatus]) -> bool:
        stmt = select(func.count(Appointment.id)).where(
            Appointment.patient_id == patient_id,
            Appointment.scheduled_date == day,
            Appointment.status.in_(list(statuses))
        )
        return bool(await self._scalar(stmt, "has_booking_on"))

    async def count_in_slot(self, doctor_id: UUID, day: date, slot_config_id: UUID, start: time) -> int:
        stmt = select(func.count(Appointment.id)).where(
            Appointment.doctor_id == doctor_id,
            Appointment.scheduled_date == day,
            Appointment.slot_config_id == slot_config_id,
            Appointment.scheduled_time == start,
            Appointment.status != AppointmentStatus.CANCELLED
        )
        return await self._scalar(stmt, "count_in_slot") or 0

    async def count_for_slot_config(self, slot_config_id: UUID) -> int:
        stmt = select(func.count(Appointment.id)).where(Appointment.slot_config_id == slot_config_id)
        return await self._scalar(stmt, "count_for_slot_config") or 0

    async def booked_on(self, doctor_id: UUID, day: date) -> List[Appointment]:
        stmt = select(Appointment).where(
            Appointment.doctor_id == doctor_id,
            Appointment.scheduled_date == day,
            Appointment.status != AppointmentStatus.CANCELLED
        )
        return await self._all(stmt, "booked_on")

    async def next_token(self, doctor_id: UUID, day: date) -> int:
        stmt = select(func.max(Appointment.token_number)).where(
            Appointment.doctor_id == doctor_id,
            Appointment.scheduled_date == day
        )
        max_token = await self._scalar(stmt, "next_token") or 0
        return max_token + 1

    async def with_token(
        self, doctor_id: UUID, day: date, token_number: int, statuses: Sequence[AppointmentStatus]
    ) -> List[Appointment]:
        stmt = select(Appointment).where(
            Appointment.doctor_id == doctor_id,
            Appointment.scheduled_date == day,
            Appointment.token_number == token_number,
            Appointment.status.in_(list(statuses))
        )
        return await self._all(stmt, "with_token")

    async def count_by_status(self, status: AppointmentStatus, day: Optional[date] = None) -> int:
        stmt = select(func.count(Appointment.id)).where(Appointment.status == status)
        if day is not None:
            stmt = stmt.where(Appointment.scheduled_date == day)
        return await self._scalar(stmt, "count_by_status") or 0

    async def count_by_doctor(self) -> List[Tuple[UUID, str, int]]:
        stmt = (
            select(Doctor.id, Doctor.name, func.count(Appointment.id))
            .join(Appointment, Appointment.doctor_id == Doctor.id)
            .group_by(Doctor.id, Doctor.name)
            .order_by(func.count(Appointment.id).desc(), Doctor.name)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("count_by_doctor", exc) from exc
        return [(row[0], row[1], row[2]) for row in result.all()]

class PenaltyStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_account(self, patient_id: UUID) -> Optional[PenalizedAccount]:
        try:
            return await self.session.get(PenalizedAccount, patient_id)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("get_account", exc) from exc

    def save_account(self, account: PenalizedAccount) -> None:
        self.session.add(account)

    async def list_penalized(self) -> List[PenalizedAccount]:
        stmt = select(PenalizedAccount).where(
            or_(PenalizedAccount.strikes > 0, PenalizedAccount.is_blocked == True)
        ).order_by(PenalizedAccount.strikes.desc())
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("list_penalized", exc) from exc
        return list(result.scalars().all())

    async def count_penalized(self) -> int:
        stmt = select(func.count(PenalizedAccount.patient_id)).where(
            or_(PenalizedAccount.strikes > 0, PenalizedAccount.is_blocked == True)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("count_penalized", exc) from exc
        return result.scalar() or 0

class UserStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_by_role(self, role: str) -> int:
        stmt = select(func.count(User.id)).where(User.role == role)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("count_users", exc) from exc
        return result.scalar() or 0

class QueueStateStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, doctor_id: UUID, day: date) -> Optional[DoctorQueueState]:
        stmt = select(DoctorQueueState).where(
            DoctorQueueState.doctor_id == doctor_id,
            DoctorQueueState.day == day
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("get_queue_state", exc) from exc
        return result.scalars().first()

    def save(self, state: DoctorQueueState) -> None:
        self.session.add(state)
