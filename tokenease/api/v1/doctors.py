from datetime import date as date_type
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from tokenease.api.deps import get_session_context
from tokenease.core.session_context import SessionContext
from tokenease.db.session import get_session
from tokenease.schemas.doctor import DoctorResponse, DailySlots
from tokenease.services.doctor_service import DoctorService, SlotService

router = APIRouter()

@router.get("/", response_model=List[DoctorResponse])
async def read_doctors(
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_session)
):
    service = DoctorService(session)
    return await service.get_doctors(active_only=True)

@router.get("/{doctor_id}", response_model=DoctorResponse)
async def read_doctor(
    doctor_id: UUID,
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_session)
):
    service = DoctorService(session)
    return await service.get_doctor(doctor_id)

@router.get("/{doctor_id}/slots", response_model=DailySlots)
async def get_doctor_slots(
    doctor_id: UUID,
    date: Optional[date_type] = None,
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_session)
):
    service = SlotService(session)
    return await service.get_available_slots(doctor_id, date or date_type.today())
