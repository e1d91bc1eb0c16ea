from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Literal, Optional
from uuid import UUID

from tokenease.api.deps import require_admin
from tokenease.core.redis import RedisClient, get_redis
from tokenease.core.session_context import SessionContext
from tokenease.db.models import AppointmentStatus
from tokenease.db.session import get_session
from tokenease.schemas.appointment import (
    AdminAppointmentList,
    AppointmentResponse,
    DashboardResponse,
    SweepResponse
)
from tokenease.schemas.doctor import (
    DoctorCreate,
    DoctorResponse,
    DoctorUpdate,
    SlotConfigCreate,
    SlotConfigResponse,
    SlotConfigUpdate
)
from tokenease.schemas.lab_test import LabTestCreate, LabTestResponse, LabTestUpdate
from tokenease.schemas.penalty import PenalizedAccountResponse
from tokenease.schemas.queue import QueueAdvance, QueueSnapshot
from tokenease.services.appointment_service import AppointmentService
from tokenease.services.doctor_service import DoctorService, SlotService
from tokenease.services.lab_test_service import LabTestService
from tokenease.services.penalty_service import PenaltyService
from tokenease.services.queue_service import QueueService
from tokenease.services.sweep_service import SweepService

router = APIRouter(dependencies=[Depends(require_admin)])

# Appointments

@router.get("/appointments", response_model=AdminAppointmentList)
async def list_appointments(
    tab: Literal["all", "upcoming", "past"] = "all",
    search: Optional[str] = None,
    session: AsyncSession = Depends(get_session)
):
    service = AppointmentService(session)
    return await service.admin_list(date.today(), tab=tab, search=search)

@router.post("/sweep", response_model=SweepResponse)
async def run_sweep(session: AsyncSession = Depends(get_session)):
    report = await SweepService(session).run(date.today())
    return SweepResponse(
        swept=report.swept,
        struck_patients=report.struck_patients,
        newly_blocked=report.newly_blocked,
        warning=report.warning
    )

@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(session: AsyncSession = Depends(get_session)):
    return await AppointmentService(session).dashboard(date.today())

async def _transition(
    appointment_id: UUID,
    target: AppointmentStatus,
    context: SessionContext,
    session: AsyncSession
) -> AppointmentResponse:
    service = AppointmentService(session)
    today = date.today()
    appointment = await service.apply_transition(appointment_id, target, context, today)
    return await service.to_response(appointment, today)

@router.post("/appointments/{appointment_id}/activate", response_model=AppointmentResponse)
async def activate_appointment(
    appointment_id: UUID,
    context: SessionContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    return await _transition(appointment_id, AppointmentStatus.ACTIVE, context, session)

@router.post("/appointments/{appointment_id}/delay", response_model=AppointmentResponse)
async def delay_appointment(
    appointment_id: UUID,
    context: SessionContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    return await _transition(appointment_id, AppointmentStatus.DELAYED, context, session)

@router.post("/appointments/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: UUID,
    context: SessionContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    return await _transition(appointment_id, AppointmentStatus.COMPLETED, context, session)

# Queue

@router.post("/queue/{doctor_id}/advance", response_model=QueueSnapshot)
async def advance_queue(
    doctor_id: UUID,
    payload: QueueAdvance,
    session: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis)
):
    service = QueueService(session, redis)
    return await service.advance(doctor_id, payload.day or date.today(), payload.to_token)

# Doctors

@router.post("/doctors", response_model=DoctorResponse, status_code=201)
async def create_doctor(doctor: DoctorCreate, session: AsyncSession = Depends(get_session)):
    return await DoctorService(session).create_doctor(doctor)

@router.get("/doctors", response_model=List[DoctorResponse])
async def list_doctors(include_inactive: bool = False, session: AsyncSession = Depends(get_session)):
    return await DoctorService(session).get_doctors(active_only=not include_inactive)

@router.patch("/doctors/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(doctor_id: UUID, doctor_update: DoctorUpdate, session: AsyncSession = Depends(get_session)):
    return await DoctorService(session).update_doctor(doctor_id, doctor_update)

@router.delete("/doctors/{doctor_id}")
async def deactivate_doctor(doctor_id: UUID, session: AsyncSession = Depends(get_session)):
    return await DoctorService(session).deactivate_doctor(doctor_id)

# Slots

@router.post("/slots", response_model=SlotConfigResponse, status_code=201)
async def create_slot_config(slot_config: SlotConfigCreate, session: AsyncSession = Depends(get_session)):
    return await SlotService(session).create_slot_config(slot_config)

@router.get("/slots", response_model=List[SlotConfigResponse])
async def list_slot_configs(doctor_id: Optional[UUID] = Query(default=None), session: AsyncSession = Depends(get_session)):
    return await SlotService(session).get_slot_configs(doctor_id)

@router.patch("/slots/{slot_config_id}", response_model=SlotConfigResponse)
async def update_slot_config(slot_config_id: UUID, slot_update: SlotConfigUpdate, session: AsyncSession = Depends(get_session)):
    return await SlotService(session).update_slot_config(slot_config_id, slot_update)

@router.delete("/slots/{slot_config_id}")
async def delete_slot_config(slot_config_id: UUID, session: AsyncSession = Depends(get_session)):
    return await SlotService(session).delete_slot_config(slot_config_id)

# Penalties

@router.get("/penalties", response_model=List[PenalizedAccountResponse])
async def list_penalties(search: Optional[str] = None, session: AsyncSession = Depends(get_session)):
    return await PenaltyService(session).list_accounts(search)

@router.post("/penalties/{patient_id}/reset", response_model=PenalizedAccountResponse)
async def reset_strikes(patient_id: UUID, session: AsyncSession = Depends(get_session)):
    return await PenaltyService(session).reset_strikes(patient_id)

@router.post("/penalties/{patient_id}/unblock", response_model=PenalizedAccountResponse)
async def unblock_patient(patient_id: UUID, session: AsyncSession = Depends(get_session)):
    return await PenaltyService(session).unblock(patient_id)

# Lab tests

@router.post("/tests", response_model=LabTestResponse, status_code=201)
async def create_lab_test(test: LabTestCreate, session: AsyncSession = Depends(get_session)):
    return await LabTestService(session).create_test(test)

@router.get("/tests", response_model=List[LabTestResponse])
async def list_lab_tests(session: AsyncSession = Depends(get_session)):
    return await LabTestService(session).get_tests()

@router.patch("/tests/{test_id}", response_model=LabTestResponse)
async def update_lab_test(test_id: UUID, test_update: LabTestUpdate, session: AsyncSession = Depends(get_session)):
    return await LabTestService(session).update_test(test_id, test_update)

@router.delete("/tests/{test_id}")
async def delete_lab_test(test_id: UUID, session: AsyncSession = Depends(get_session)):
    return await LabTestService(session).delete_test(test_id)
