from pydantic import BaseModel, ConfigDict
from typing import Optional
from uuid import UUID
from datetime import date

class PenalizedAccountResponse(BaseModel):
    patient_id: UUID
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    strikes: int
    display_strikes: int
    is_blocked: bool
    blocked_until: Optional[date] = None
    last_missed_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)
