from typing import AsyncIterator

import redis.asyncio as redis
from tokenease.core.config import settings

class RedisClient:
    def __init__(self, url: str | None = None):
        self.redis = redis.from_url(url or settings.REDIS_URL, encoding="utf-8", decode_responses=True)

    async def set_token(self, token: str, value: str, expire: int):
        await self.redis.set(f"token:{token}", value, ex=expire)

    async def get_token(self, token: str) -> str | None:
        return await self.redis.get(f"token:{token}")

    async def delete_token(self, token: str):
        await self.redis.delete(f"token:{token}")

    async def publish(self, channel: str, message: str) -> int:
        return await self.redis.publish(channel, message)

    async def listen(self, channel: str) -> AsyncIterator[str]:
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") == "message":
                    yield message["data"]
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()

    async def close(self):
        await self.redis.aclose()

redis_client = RedisClient()

def get_redis() -> RedisClient:
    return redis_client
