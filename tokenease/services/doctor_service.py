from datetime import date, datetime, timedelta
from typing import List
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tokenease.db.models import Doctor, SlotConfig
from tokenease.db.stores import AppointmentStore
from tokenease.schemas.doctor import (
    WEEKDAYS,
    DoctorCreate,
    DoctorUpdate,
    SlotConfigCreate,
    SlotConfigUpdate,
    DailySlots,
    Slot,
)

class DoctorService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_doctor(self, data: DoctorCreate) -> Doctor:
        doctor = Doctor(**data.model_dump())
        self.session.add(doctor)
        await self.session.commit()
        await self.session.refresh(doctor)
        return doctor

    async def get_doctors(self, active_only: bool = True) -> List[Doctor]:
        query = select(Doctor).order_by(Doctor.name)
        if active_only:
            query = query.where(Doctor.is_active == True)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_doctor(self, doctor_id: UUID) -> Doctor:
        doctor = await self.session.get(Doctor, doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return doctor

    async def update_doctor(self, doctor_id: UUID, doctor_update: DoctorUpdate) -> Doctor:
        doctor = await self.get_doctor(doctor_id)

        update_data = doctor_update.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(doctor, key, value)

        self.session.add(doctor)
        await self.session.commit()
        await self.session.refresh(doctor)
        return doctor

    async def deactivate_doctor(self, doctor_id: UUID) -> dict:
        doctor = await self.get_doctor(doctor_id)
        doctor.is_active = False
        self.session.add(doctor)
        await self.session.commit()
        return {"message": "Doctor deactivated successfully"}

class SlotService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_slot_config(self, data: SlotConfigCreate) -> SlotConfig:
        doctor = await self.session.get(Doctor, data.doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")

        slot_config = SlotConfig(**data.model_dump())
        self.session.add(slot_config)
        await self.session.commit()
        await self.session.refresh(slot_config)
        return slot_config

    async def get_slot_config(self, slot_config_id: UUID) -> SlotConfig:
        slot_config = await self.session.get(SlotConfig, slot_config_id)
        if not slot_config:
            raise HTTPException(status_code=404, detail="Slot configuration not found")
        return slot_config

    async def get_slot_configs(self, doctor_id: UUID | None = None) -> List[SlotConfig]:
        query = select(SlotConfig).order_by(SlotConfig.created_at)
        if doctor_id:
            query = query.where(SlotConfig.doctor_id == doctor_id)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def update_slot_config(self, slot_config_id: UUID, slot_update: SlotConfigUpdate) -> SlotConfig:
        slot_config = await self.get_slot_config(slot_config_id)

        update_data = slot_update.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(slot_config, key, value)

        self.session.add(slot_config)
        await self.session.commit()
        await self.session.refresh(slot_config)
        return slot_config

    async def delete_slot_config(self, slot_config_id: UUID) -> dict:
        slot_config = await self.get_slot_config(slot_config_id)
        # Appointments keep a reference to the slot they were booked in
        booked = await AppointmentStore(self.session).count_for_slot_config(slot_config_id)
        if booked:
            raise HTTPException(
                status_code=409,
                detail=f"Slot configuration has {booked} appointment(s); update it instead of deleting"
            )
        await self.session.delete(slot_config)
        await self.session.commit()
        return {"message": "Slot configuration deleted successfully"}

    async def get_available_slots(self, doctor_id: UUID, day: date) -> DailySlots:
        await DoctorService(self.session).get_doctor(doctor_id)

        weekday = WEEKDAYS[day.weekday()]
        configs = [c for c in await self.get_slot_configs(doctor_id) if weekday in c.days_of_week]

        booked = await AppointmentStore(self.session).booked_on(doctor_id, day)
        counts: dict[tuple, int] = {}
        for appt in booked:
            key = (appt.slot_config_id, appt.scheduled_time.strftime("%H:%M"))
            counts[key] = counts.get(key, 0) + 1

        slots = []
        for config in configs:
            for start in config.start_times:
                taken = counts.get((config.id, start), 0)
                slots.append(Slot(
                    slot_config_id=config.id,
                    start_time=start,
                    label=slot_label(start, config.slot_minutes),
                    capacity=config.capacity_per_slot,
                    booked=taken,
                    available=taken < config.capacity_per_slot
                ))

        slots.sort(key=lambda s: s.start_time)
        return DailySlots(doctor_id=doctor_id, date=day.isoformat(), slots=slots)

def slot_label(start: str, slot_minutes: int) -> str:
    begin = datetime.strptime(start, "%H:%M")
    end = begin + timedelta(minutes=slot_minutes)
    return f"{begin:%H:%M} - {end:%H:%M}"
