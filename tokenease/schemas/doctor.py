from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from tokenease.core.config import settings

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

class DoctorBase(BaseModel):
    name: str = Field(min_length=1)
    specialization: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    avg_minutes_per_token: Optional[int] = Field(default=None, gt=0)

class DoctorCreate(DoctorBase):
    pass

class DoctorUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    specialization: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    avg_minutes_per_token: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None

class DoctorResponse(DoctorBase):
    id: UUID
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

def _check_weekdays(days: List[str]) -> List[str]:
    unknown = [d for d in days if d not in WEEKDAYS]
    if unknown:
        raise ValueError(f"Unknown day(s) of week: {', '.join(unknown)}")
    return days

def _check_times(times: List[str]) -> List[str]:
    for value in times:
        parts = value.split(":")
        if len(parts) != 2 or not all(p.isdigit() and len(p) == 2 for p in parts):
            raise ValueError(f"Time '{value}' must be HH:MM")
        hour, minute = int(parts[0]), int(parts[1])
        if hour > 23 or minute > 59:
            raise ValueError(f"Time '{value}' is out of range")
    return sorted(set(times))

class SlotConfigCreate(BaseModel):
    doctor_id: UUID
    days_of_week: List[str] = Field(min_length=1)
    start_times: List[str] = Field(min_length=1)
    slot_minutes: int = Field(default=15, gt=0)
    capacity_per_slot: int = Field(ge=1, le=settings.MAX_SLOT_CAPACITY)

    @field_validator("days_of_week")
    @classmethod
    def check_days(cls, value):
        return _check_weekdays(value)

    @field_validator("start_times")
    @classmethod
    def check_times(cls, value):
        return _check_times(value)

class SlotConfigUpdate(BaseModel):
    days_of_week: Optional[List[str]] = Field(default=None, min_length=1)
    start_times: Optional[List[str]] = Field(default=None, min_length=1)
    slot_minutes: Optional[int] = Field(default=None, gt=0)
    capacity_per_slot: Optional[int] = Field(default=None, ge=1, le=settings.MAX_SLOT_CAPACITY)

    @field_validator("days_of_week")
    @classmethod
    def check_days(cls, value):
        return _check_weekdays(value) if value is not None else value

    @field_validator("start_times")
    @classmethod
    def check_times(cls, value):
        return _check_times(value) if value is not None else value

class SlotConfigResponse(BaseModel):
    id: UUID
    doctor_id: UUID
    days_of_week: List[str]
    start_times: List[str]
    slot_minutes: int
    capacity_per_slot: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class Slot(BaseModel):
    slot_config_id: UUID
    start_time: str
    label: str
    capacity: int
    booked: int
    available: bool

class DailySlots(BaseModel):
    doctor_id: UUID
    date: str
    slots: List[Slot]
