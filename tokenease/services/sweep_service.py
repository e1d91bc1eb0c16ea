from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tokenease.core.config import settings
from tokenease.core.exceptions import StoreUnavailable
from tokenease.core.logger import logger
from tokenease.db.models import AppointmentStatus, PenalizedAccount
from tokenease.db.models.appointment import OPEN_STATUSES
from tokenease.db.stores import AppointmentStore, PenaltyStore, commit_or_raise
from tokenease.services import penalty_rules
from tokenease.services.transitions import sweep

@dataclass
class SweepReport:
    swept: int = 0
    struck_patients: int = 0
    newly_blocked: int = 0
    warning: Optional[str] = None

class SweepService:
    """
    Marks stale open appointments as missed and records a strike for each.

    The status batch and the strikes commit in one transaction. A store
    failure is logged and reported as an empty sweep; the next run retries,
    and the status guard keeps re-runs from double counting.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.appointments = AppointmentStore(session)
        self.penalties = PenaltyStore(session)

    async def run(self, today: date) -> SweepReport:
        try:
            return await self._run(today)
        except StoreUnavailable as exc:
            await self.session.rollback()
            logger.warning(f"Missed-appointment sweep for {today} skipped: {exc}")
            return SweepReport(warning="Could not update missed appointments; showing unswept data.")

    async def _run(self, today: date) -> SweepReport:
        candidates = await self.appointments.query_by_date_before(today, OPEN_STATUSES)
        missed_ids = sweep(today, candidates)
        if not missed_ids:
            return SweepReport()

        missed = [appt for appt in candidates if appt.id in missed_ids]
        updated = await self.appointments.batch_update_status(
            missed_ids, AppointmentStatus.MISSED, only_from=OPEN_STATUSES
        )
        if updated != len(missed_ids):
            logger.warning(f"Sweep expected {len(missed_ids)} rows, updated {updated}")

        accounts: Dict[UUID, PenalizedAccount] = {}
        newly_blocked = 0
        for appt in missed:
            account = accounts.get(appt.patient_id)
            if account is None:
                account = await self.penalties.get_account(appt.patient_id)
                if account is None:
                    account = penalty_rules.new_account(appt.patient_id)
                accounts[appt.patient_id] = account

            was_blocked = not penalty_rules.can_book(account, today)
            penalty_rules.on_missed(
                account,
                missed_on=appt.scheduled_date,
                today=today,
                strike_limit=settings.PENALTY_STRIKE_LIMIT,
                block_days=settings.PENALTY_BLOCK_DAYS,
            )
            if account.is_blocked and not was_blocked:
                newly_blocked += 1
                logger.info(f"Patient {appt.patient_id} blocked until {account.blocked_until} after {account.strikes} strikes")

        for account in accounts.values():
            self.penalties.save_account(account)

        await commit_or_raise(self.session, "sweep")
        logger.info(f"Sweep for {today}: {len(missed)} missed, {len(accounts)} patients struck")
        return SweepReport(swept=len(missed), struck_patients=len(accounts), newly_blocked=newly_blocked)
