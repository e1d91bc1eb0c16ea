from typing import List
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tokenease.core.config import settings
from tokenease.core.logger import logger
from tokenease.db.models import PenalizedAccount, User
from tokenease.db.stores import PenaltyStore, commit_or_raise
from tokenease.schemas.penalty import PenalizedAccountResponse
from tokenease.services import penalty_rules

class PenaltyService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = PenaltyStore(session)

    async def _get_or_404(self, patient_id: UUID) -> PenalizedAccount:
        account = await self.store.get_account(patient_id)
        if not account:
            raise HTTPException(status_code=404, detail="No penalty record for this patient")
        return account

    async def to_response(self, account: PenalizedAccount) -> PenalizedAccountResponse:
        patient = await self.session.get(User, account.patient_id)
        return PenalizedAccountResponse(
            patient_id=account.patient_id,
            patient_name=patient.name if patient else None,
            patient_email=patient.email if patient else None,
            strikes=account.strikes,
            display_strikes=penalty_rules.display_strikes(account, settings.PENALTY_STRIKE_LIMIT),
            is_blocked=account.is_blocked,
            blocked_until=account.blocked_until,
            last_missed_date=account.last_missed_date,
        )

    async def list_accounts(self, search: str | None = None) -> List[PenalizedAccountResponse]:
        accounts = await self.store.list_penalized()
        responses = [await self.to_response(account) for account in accounts]
        if search:
            needle = search.lower()
            responses = [
                r for r in responses
                if needle in (r.patient_name or "").lower() or needle in (r.patient_email or "").lower()
            ]
        return responses

    async def reset_strikes(self, patient_id: UUID) -> PenalizedAccountResponse:
        account = penalty_rules.reset_strikes(await self._get_or_404(patient_id))
        self.store.save_account(account)
        await commit_or_raise(self.session, "reset_strikes")
        logger.info(f"Strikes reset for patient {patient_id}")
        return await self.to_response(account)

    async def unblock(self, patient_id: UUID) -> PenalizedAccountResponse:
        account = penalty_rules.unblock(await self._get_or_404(patient_id))
        self.store.save_account(account)
        await commit_or_raise(self.session, "unblock")
        logger.info(f"Patient {patient_id} unblocked")
        return await self.to_response(account)
