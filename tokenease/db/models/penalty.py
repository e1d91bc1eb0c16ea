from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from typing import Optional
from datetime import date, datetime
from uuid import UUID

from tokenease.core.utils import utc_now

class PenalizedAccount(SQLModel, table=True):
    __tablename__ = "penalized_accounts"
    patient_id: UUID = Field(foreign_key="users.id", primary_key=True)
    strikes: int = Field(default=0)
    is_blocked: bool = Field(default=False)
    blocked_until: Optional[date] = None
    last_missed_date: Optional[date] = None
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
