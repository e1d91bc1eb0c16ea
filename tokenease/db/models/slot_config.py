from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import JSON, Column, DateTime
from typing import List, TYPE_CHECKING
from datetime import datetime
from uuid import UUID, uuid4

from tokenease.core.utils import utc_now

if TYPE_CHECKING:
    from .doctor import Doctor

class SlotConfig(SQLModel, table=True):
    __tablename__ = "slot_configs"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", index=True)
    days_of_week: List[str] = Field(default=[], sa_column=Column(JSON)) # "Monday".."Sunday"
    start_times: List[str] = Field(default=[], sa_column=Column(JSON)) # "HH:MM"
    slot_minutes: int = Field(default=15)
    capacity_per_slot: int
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    doctor: "Doctor" = Relationship(back_populates="slot_configs")
