from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import date, datetime

class QueueSnapshot(BaseModel):
    doctor_id: UUID
    day: date
    current_serving: int = Field(ge=0)
    updated_at: Optional[datetime] = None

class QueueAdvance(BaseModel):
    day: Optional[date] = None
    # Jump straight to this token; omitted means "next"
    to_token: Optional[int] = Field(default=None, ge=1)
