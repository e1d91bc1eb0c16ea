from typing import List
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tokenease.core.logger import logger
from tokenease.db.models import LabTest
from tokenease.db.stores import commit_or_raise
from tokenease.schemas.lab_test import LabTestCreate, LabTestUpdate

class LabTestService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_test(self, data: LabTestCreate) -> LabTest:
        test = LabTest(**data.model_dump())
        self.session.add(test)
        await commit_or_raise(self.session, "create_lab_test")
        await self.session.refresh(test)
        logger.info(f"Lab test '{test.name}' added")
        return test

    async def get_tests(self) -> List[LabTest]:
        result = await self.session.execute(select(LabTest).order_by(LabTest.name))
        return result.scalars().all()

    async def get_test(self, test_id: UUID) -> LabTest:
        test = await self.session.get(LabTest, test_id)
        if not test:
            raise HTTPException(status_code=404, detail="Lab test not found")
        return test

    async def update_test(self, test_id: UUID, test_update: LabTestUpdate) -> LabTest:
        test = await self.get_test(test_id)

        update_data = test_update.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(test, key, value)

        self.session.add(test)
        await commit_or_raise(self.session, "update_lab_test")
        await self.session.refresh(test)
        return test

    async def delete_test(self, test_id: UUID) -> dict:
        test = await self.get_test(test_id)
        await self.session.delete(test)
        await commit_or_raise(self.session, "delete_lab_test")
        logger.info(f"Lab test '{test.name}' removed")
        return {"message": "Lab test deleted successfully"}
