from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from tokenease.core.utils import utc_now
from tokenease.db.models.penalty import PenalizedAccount

def new_account(patient_id: UUID) -> PenalizedAccount:
    return PenalizedAccount(patient_id=patient_id, strikes=0, is_blocked=False)

def on_missed(
    account: PenalizedAccount,
    missed_on: date,
    today: date,
    strike_limit: int = 3,
    block_days: Optional[int] = None,
) -> PenalizedAccount:
    """
    Record one strike. The stored count keeps growing past the limit; the
    block and its end date are only set on the transition into blocked.

    A block whose end date has passed is over: the account starts a fresh
    round of strikes and is blocked again when it reaches the limit.
    """
    if block_lapsed(account, today):
        account.is_blocked = False
        account.blocked_until = None
        account.strikes = 0
    account.strikes += 1
    if account.last_missed_date is None or missed_on > account.last_missed_date:
        account.last_missed_date = missed_on
    if account.strikes >= strike_limit and not account.is_blocked:
        account.is_blocked = True
        account.blocked_until = today + timedelta(days=block_days) if block_days else None
    account.updated_at = utc_now()
    return account

def reset_strikes(account: PenalizedAccount) -> PenalizedAccount:
    account.strikes = 0
    account.is_blocked = False
    account.blocked_until = None
    account.updated_at = utc_now()
    return account

def unblock(account: PenalizedAccount) -> PenalizedAccount:
    # Lifting a block also clears the strike history
    return reset_strikes(account)

def block_lapsed(account: PenalizedAccount, today: date) -> bool:
    return account.is_blocked and account.blocked_until is not None and account.blocked_until <= today

def can_book(account: Optional[PenalizedAccount], today: date) -> bool:
    if account is None or not account.is_blocked:
        return True
    return block_lapsed(account, today)

def display_strikes(account: Optional[PenalizedAccount], strike_limit: int = 3) -> int:
    if account is None:
        return 0
    return min(account.strikes, strike_limit)
