import asyncio
from datetime import date, time
from typing import AsyncIterator, Dict, List, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from tokenease.core.redis import get_redis
from tokenease.core.security import get_password_hash
from tokenease.core.session_context import SessionContext
from tokenease.db.models import Appointment, AppointmentStatus, Doctor, SlotConfig, User
from tokenease.db.session import get_session
from tokenease.main import app
from tokenease.schemas.doctor import WEEKDAYS

PASSWORD = "Sunny-Tiger-042"
PASSWORD_HASH = get_password_hash(PASSWORD)

class InMemoryRedis:
    """Test double for RedisClient: tokens in a dict, pub/sub over asyncio queues."""

    def __init__(self):
        self.tokens: Dict[str, str] = {}
        self.published: List[tuple] = []
        self.subscribers: Dict[str, List[asyncio.Queue]] = {}

    async def set_token(self, token: str, value: str, expire: int):
        self.tokens[token] = value

    async def get_token(self, token: str):
        return self.tokens.get(token)

    async def delete_token(self, token: str):
        self.tokens.pop(token, None)

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        queues = self.subscribers.get(channel, [])
        for queue in queues:
            queue.put_nowait(message)
        return len(queues)

    async def listen(self, channel: str) -> AsyncIterator[str]:
        queue: asyncio.Queue = asyncio.Queue()
        self.subscribers.setdefault(channel, []).append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self.subscribers[channel].remove(queue)

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()

@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

@pytest.fixture
async def session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session

@pytest.fixture
def redis():
    return InMemoryRedis()

@pytest.fixture
async def client(session_factory, redis) -> AsyncIterator[AsyncClient]:
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_redis] = lambda: redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

@pytest.fixture
async def admin(session) -> User:
    user = User(role="admin", name="Clinic Admin", email="admin@tokenease.test", password_hash=PASSWORD_HASH)
    session.add(user)
    await session.commit()
    return user

@pytest.fixture
async def patient(session) -> User:
    user = User(role="patient", name="Asha Menon", email="asha@tokenease.test", password_hash=PASSWORD_HASH)
    session.add(user)
    await session.commit()
    return user

@pytest.fixture
async def doctor(session) -> Doctor:
    doctor = Doctor(name="Dr. Priya Nair", specialization="Gynecology", avg_minutes_per_token=5)
    session.add(doctor)
    await session.commit()
    return doctor

@pytest.fixture
async def slot_config(session, doctor) -> SlotConfig:
    slot_config = SlotConfig(
        doctor_id=doctor.id,
        days_of_week=list(WEEKDAYS),
        start_times=["09:00", "09:15"],
        slot_minutes=15,
        capacity_per_slot=2,
    )
    session.add(slot_config)
    await session.commit()
    return slot_config

def context_for(user: User) -> SessionContext:
    return SessionContext(user_id=user.id, role=user.role, name=user.name)

async def make_appointment(
    session: AsyncSession,
    patient: User,
    doctor: Doctor,
    day: date,
    status: AppointmentStatus = AppointmentStatus.UPCOMING,
    token_number: int = 1,
    slot_config: Optional[SlotConfig] = None,
) -> Appointment:
    appointment = Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        slot_config_id=slot_config.id if slot_config else None,
        scheduled_date=day,
        scheduled_time=time(9, 0),
        time_display="09:00 - 09:15",
        token_number=token_number,
        status=status,
    )
    session.add(appointment)
    await session.commit()
    return appointment

async def login(client: AsyncClient, user: User) -> Dict[str, str]:
    response = await client.post("/api/v1/auth/login", json={"email": user.email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
