from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from uuid import UUID, uuid4

from tokenease.core.utils import utc_now

if TYPE_CHECKING:
    from .appointment import Appointment

class User(SQLModel, table=True):
    __tablename__ = "users"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    role: str # admin, patient
    name: str
    email: str = Field(unique=True, index=True)
    phone: Optional[str] = None
    password_hash: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    appointments: List["Appointment"] = Relationship(back_populates="patient")
