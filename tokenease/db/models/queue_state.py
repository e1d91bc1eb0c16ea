from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime, UniqueConstraint
from datetime import date, datetime
from uuid import UUID, uuid4

from tokenease.core.utils import utc_now

class DoctorQueueState(SQLModel, table=True):
    __tablename__ = "doctor_queue_states"
    __table_args__ = (UniqueConstraint("doctor_id", "day"),)
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", index=True)
    day: date
    current_serving: int = Field(default=0)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
