import json
from dataclasses import asdict, dataclass
from typing import Optional
from uuid import UUID

from tokenease.core.config import settings
from tokenease.core.redis import RedisClient

@dataclass(frozen=True)
class SessionContext:
    """
    Who is calling. Loaded once per request by the API dependencies and
    passed explicitly to services; there is no module-level "current user".
    """
    user_id: UUID
    role: str
    name: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_json(self) -> str:
        data = asdict(self)
        data["user_id"] = str(self.user_id)
        return json.dumps(data)

    @classmethod
    def from_json(cls, raw: str) -> "SessionContext":
        data = json.loads(raw)
        return cls(user_id=UUID(data["user_id"]), role=data["role"], name=data["name"])

async def save_session(redis: RedisClient, token: str, context: SessionContext) -> None:
    await redis.set_token(token, context.to_json(), settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60)

async def load_session(redis: RedisClient, token: str) -> Optional[SessionContext]:
    raw = await redis.get_token(token)
    if raw is None:
        return None
    return SessionContext.from_json(raw)

async def revoke_session(redis: RedisClient, token: str) -> None:
    await redis.delete_token(token)
