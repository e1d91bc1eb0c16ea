from pydantic import BaseModel, ConfigDict, field_validator
from uuid import UUID
from datetime import date, datetime, time
from datetime import date as date_type
from typing import Optional, List

from tokenease.db.models.appointment import AppointmentStatus

class AppointmentCreate(BaseModel):
    doctor_id: UUID
    slot_config_id: UUID
    date: date_type
    start_time: time
    notes: Optional[str] = None

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_hhmm(cls, value):
        if isinstance(value, str) and len(value) == 5:
            return f"{value}:00"
        return value

class AppointmentResponse(BaseModel):
    id: UUID
    patient_id: UUID
    doctor_id: UUID
    doctor_name: Optional[str] = None
    patient_name: Optional[str] = None
    specialization: Optional[str] = None
    scheduled_date: date
    scheduled_time: time
    time_display: str
    token_number: int
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class TokenProgressResponse(BaseModel):
    current_serving: int
    wait_minutes: int
    wait_label: str
    is_your_turn: bool

class AppointmentStatusResponse(BaseModel):
    appointment: AppointmentResponse
    status: AppointmentStatus
    # Only present while the appointment is still open
    progress: Optional[TokenProgressResponse] = None

class AdminAppointmentList(BaseModel):
    appointments: List[AppointmentResponse]
    swept: int = 0
    warnings: List[str] = []
    error: Optional[str] = None

class SweepResponse(BaseModel):
    swept: int
    struck_patients: int
    newly_blocked: int
    warning: Optional[str] = None

class DashboardSection(BaseModel):
    value: int = 0
    error: bool = False

class DoctorAppointmentCount(BaseModel):
    doctor_id: UUID
    name: str
    value: int

class DoctorBreakdownSection(BaseModel):
    items: List[DoctorAppointmentCount] = []
    error: bool = False

class DashboardResponse(BaseModel):
    total_patients: DashboardSection
    completed_appointments: DashboardSection
    visited_today: DashboardSection
    upcoming_today: DashboardSection
    active_penalties: DashboardSection
    appointments_by_doctor: DoctorBreakdownSection
    swept: int = 0
    warnings: List[str] = []
