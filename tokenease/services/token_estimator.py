from dataclasses import dataclass
from typing import Optional

from tokenease.core.exceptions import InvalidConfiguration
from tokenease.db.models.appointment import Appointment
from tokenease.db.models.queue_state import DoctorQueueState

YOUR_TURN_LABEL = "Your turn!"

@dataclass(frozen=True)
class TokenEstimate:
    wait_minutes: int
    wait_label: str
    is_your_turn: bool

@dataclass(frozen=True)
class TokenProgress:
    current_serving: int
    wait_minutes: int
    wait_label: str
    is_your_turn: bool

def format_wait(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    if not hours:
        return f"{mins} min"
    if not mins:
        return f"{hours} hr"
    return f"{hours} hr {mins} min"

def estimate(your_token: int, current_serving: int, avg_minutes_per_token: int) -> TokenEstimate:
    """
    Linear wait estimate for a patient's token.

    A serving counter at or past the patient's token means it is their turn;
    "past" covers a skipped token.
    """
    if avg_minutes_per_token <= 0:
        raise InvalidConfiguration(
            f"avg_minutes_per_token must be positive, got {avg_minutes_per_token}"
        )
    if current_serving >= your_token:
        return TokenEstimate(wait_minutes=0, wait_label=YOUR_TURN_LABEL, is_your_turn=True)

    wait_minutes = (your_token - current_serving) * avg_minutes_per_token
    return TokenEstimate(wait_minutes=wait_minutes, wait_label=format_wait(wait_minutes), is_your_turn=False)

def token_progress(
    appointment: Appointment,
    queue_state: Optional[DoctorQueueState],
    avg_minutes_per_token: int,
) -> TokenProgress:
    # No queue row yet for the day means nobody has been called
    current_serving = queue_state.current_serving if queue_state else 0
    result = estimate(appointment.token_number, current_serving, avg_minutes_per_token)
    return TokenProgress(
        current_serving=current_serving,
        wait_minutes=result.wait_minutes,
        wait_label=result.wait_label,
        is_your_turn=result.is_your_turn,
    )
