from enum import Enum
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import date, datetime, time
from uuid import UUID, uuid4

from tokenease.core.utils import utc_now

if TYPE_CHECKING:
    from .doctor import Doctor
    from .user import User

class AppointmentStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    DELAYED = "delayed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    MISSED = "missed"

# Statuses still waiting to be served; the sweep only looks at these
OPEN_STATUSES = (AppointmentStatus.UPCOMING, AppointmentStatus.ACTIVE, AppointmentStatus.DELAYED)
TERMINAL_STATUSES = (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.MISSED)

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    patient_id: UUID = Field(foreign_key="users.id", index=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", index=True)
    slot_config_id: Optional[UUID] = Field(default=None, foreign_key="slot_configs.id")
    scheduled_date: date = Field(index=True)
    scheduled_time: time
    time_display: str
    token_number: int
    status: AppointmentStatus = Field(default=AppointmentStatus.UPCOMING, index=True)
    notes: Optional[str] = None
    specialization: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    doctor: "Doctor" = Relationship(back_populates="appointments")
    patient: "User" = Relationship(back_populates="appointments")
