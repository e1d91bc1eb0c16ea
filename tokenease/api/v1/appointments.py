from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from tokenease.api.deps import get_session_context, require_patient
from tokenease.core.session_context import SessionContext
from tokenease.db.session import get_session
from tokenease.schemas.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusResponse
)
from tokenease.services.appointment_service import AppointmentService

router = APIRouter()

async def get_appointment_service(session: AsyncSession = Depends(get_session)) -> AppointmentService:
    return AppointmentService(session)

@router.post("/", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    request: AppointmentCreate,
    context: SessionContext = Depends(require_patient),
    service: AppointmentService = Depends(get_appointment_service)
):
    today = date.today()
    appointment = await service.book(context, request, today)
    return await service.to_response(appointment, today)

@router.get("/", response_model=List[AppointmentResponse])
async def read_my_appointments(
    context: SessionContext = Depends(require_patient),
    service: AppointmentService = Depends(get_appointment_service)
):
    return await service.list_for_patient(context.user_id, date.today())

@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def read_appointment(
    appointment_id: UUID,
    context: SessionContext = Depends(get_session_context),
    service: AppointmentService = Depends(get_appointment_service)
):
    appointment = await service.get_appointment(appointment_id, context)
    return await service.to_response(appointment, date.today())

@router.get("/{appointment_id}/status", response_model=AppointmentStatusResponse)
async def read_appointment_status(
    appointment_id: UUID,
    context: SessionContext = Depends(get_session_context),
    service: AppointmentService = Depends(get_appointment_service)
):
    appointment = await service.get_appointment(appointment_id, context)
    return await service.get_status(appointment, date.today())

@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: UUID,
    context: SessionContext = Depends(get_session_context),
    service: AppointmentService = Depends(get_appointment_service)
):
    today = date.today()
    appointment = await service.cancel(appointment_id, context, today)
    return await service.to_response(appointment, today)
