import asyncio
import contextlib
from datetime import date as date_type
from typing import AsyncGenerator, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tokenease.api.deps import get_session_context
from tokenease.core.config import settings
from tokenease.core.redis import RedisClient, get_redis
from tokenease.core.session_context import SessionContext
from tokenease.db.session import get_session
from tokenease.schemas.queue import QueueSnapshot
from tokenease.services.queue_service import QueueFeed

router = APIRouter()

async def get_queue_feed(
    session: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis)
) -> QueueFeed:
    return QueueFeed(session, redis)

@router.get("/{doctor_id}", response_model=QueueSnapshot)
async def read_queue(
    doctor_id: UUID,
    day: Optional[date_type] = None,
    context: SessionContext = Depends(get_session_context),
    feed: QueueFeed = Depends(get_queue_feed)
):
    return await feed.latest(doctor_id, day or date_type.today())

async def stream_snapshots(request: Request, feed: QueueFeed, doctor_id: UUID, day: date_type) -> AsyncGenerator[str, None]:
    """
    Server-Sent Events: the current snapshot first, then one event per
    published change. Heartbeat comments keep idle connections open.
    """
    yield f"data: {(await feed.latest(doctor_id, day)).model_dump_json()}\n\n"

    updates = feed.subscribe(doctor_id, day).__aiter__()
    pending = None
    try:
        while not await request.is_disconnected():
            if pending is None:
                pending = asyncio.ensure_future(updates.__anext__())
            done, _ = await asyncio.wait({pending}, timeout=settings.QUEUE_STREAM_HEARTBEAT_SECONDS)
            if not done:
                yield ": keep-alive\n\n"
                continue
            try:
                snapshot = pending.result()
            except StopAsyncIteration:
                break
            finally:
                pending = None
            yield f"data: {snapshot.model_dump_json()}\n\n"
    finally:
        if pending is not None:
            pending.cancel()
            with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                await pending
        await updates.aclose()

@router.get("/{doctor_id}/stream")
async def stream_queue(
    doctor_id: UUID,
    request: Request,
    day: Optional[date_type] = None,
    context: SessionContext = Depends(get_session_context),
    feed: QueueFeed = Depends(get_queue_feed)
):
    return StreamingResponse(
        stream_snapshots(request, feed, doctor_id, day or date_type.today()),
        media_type="text/event-stream"
    )
