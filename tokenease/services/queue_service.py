from datetime import date
from typing import AsyncIterator, Optional
from uuid import UUID

from fastapi import HTTPException
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from tokenease.core.exceptions import InvalidTransition
from tokenease.core.logger import logger
from tokenease.core.redis import RedisClient
from tokenease.core.utils import utc_now
from tokenease.db.models import AppointmentStatus, Doctor, DoctorQueueState
from tokenease.db.stores import AppointmentStore, QueueStateStore, commit_or_raise
from tokenease.schemas.queue import QueueSnapshot
from tokenease.schemas.result import Ok, validate_command
from tokenease.services import transitions

def queue_channel(doctor_id: UUID, day: date) -> str:
    return f"queue:{doctor_id}:{day.isoformat()}"

def to_snapshot(doctor_id: UUID, day: date, state: Optional[DoctorQueueState]) -> QueueSnapshot:
    if state is None:
        return QueueSnapshot(doctor_id=doctor_id, day=day, current_serving=0)
    return QueueSnapshot(
        doctor_id=state.doctor_id,
        day=state.day,
        current_serving=state.current_serving,
        updated_at=state.updated_at
    )

class QueueFeed:
    """
    Read side of a doctor's daily queue.

    `latest` pulls the current counter from the store; `subscribe` yields
    every snapshot published after a counter change. Neither computes wait
    estimates: callers run the estimator on whatever snapshot they hold.
    """

    def __init__(self, session: AsyncSession, redis: RedisClient):
        self.states = QueueStateStore(session)
        self.redis = redis

    async def latest(self, doctor_id: UUID, day: date) -> QueueSnapshot:
        state = await self.states.get(doctor_id, day)
        return to_snapshot(doctor_id, day, state)

    async def subscribe(self, doctor_id: UUID, day: date) -> AsyncIterator[QueueSnapshot]:
        async for raw in self.redis.listen(queue_channel(doctor_id, day)):
            result = validate_command(QueueSnapshot, raw)
            if isinstance(result, Ok):
                yield result.value
            else:
                logger.warning(f"Dropping malformed queue message on {queue_channel(doctor_id, day)}: {result.fields}")

class QueueService:
    """Doctor-side counter updates."""

    def __init__(self, session: AsyncSession, redis: RedisClient):
        self.session = session
        self.redis = redis
        self.states = QueueStateStore(session)
        self.appointments = AppointmentStore(session)

    async def advance(self, doctor_id: UUID, day: date, to_token: Optional[int] = None) -> QueueSnapshot:
        doctor = await self.session.get(Doctor, doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")

        state = await self.states.get(doctor_id, day)
        if state is None:
            state = DoctorQueueState(doctor_id=doctor_id, day=day, current_serving=0)

        target = state.current_serving + 1 if to_token is None else to_token
        if target < state.current_serving:
            raise InvalidTransition(
                str(state.current_serving),
                str(target),
                reason=f"Serving counter cannot move back from {state.current_serving} to {target}"
            )

        state.current_serving = target
        state.updated_at = utc_now()
        self.states.save(state)

        # The doctor calling a token starts that patient's consultation
        called = await self.appointments.with_token(
            doctor_id, day, target, [AppointmentStatus.UPCOMING, AppointmentStatus.DELAYED]
        )
        for appt in called:
            transitions.activate(appt)
            self.appointments.add(appt)

        await commit_or_raise(self.session, "advance_queue")
        snapshot = to_snapshot(doctor_id, day, state)
        logger.info(f"Doctor {doctor_id} now serving token {target} on {day}")
        await self.publish(snapshot)
        return snapshot

    async def publish(self, snapshot: QueueSnapshot) -> None:
        # The store stays authoritative; subscribers can fall back to polling
        try:
            await self.redis.publish(queue_channel(snapshot.doctor_id, snapshot.day), snapshot.model_dump_json())
        except RedisError as exc:
            logger.warning(f"Could not publish queue update for doctor {snapshot.doctor_id}: {exc}")
