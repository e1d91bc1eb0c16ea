from datetime import timedelta
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tokenease.core.config import settings
from tokenease.core.logger import logger
from tokenease.core.redis import RedisClient
from tokenease.core.security import verify_password, create_access_token
from tokenease.core.session_context import SessionContext, save_session, revoke_session
from tokenease.db.models import User
from tokenease.schemas.auth import LoginRequest, LoginResponse, UserInfo

class AuthService:
    def __init__(self, session: AsyncSession, redis: RedisClient):
        self.session = session
        self.redis = redis

    async def login(self, login_data: LoginRequest) -> LoginResponse:
        stmt = select(User).where(User.email == login_data.email.lower())
        result = await self.session.execute(stmt)
        user = result.scalars().first()

        if not user or not verify_password(login_data.password, user.password_hash):
            raise HTTPException(status_code=401, detail="Invalid email or password")

        access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        access_token = create_access_token(
            data={"sub": str(user.id), "role": user.role}, expires_delta=access_token_expires
        )

        await save_session(
            self.redis,
            access_token,
            SessionContext(user_id=user.id, role=user.role, name=user.name),
        )
        logger.info(f"User {user.id} ({user.role}) logged in")

        return LoginResponse(
            access_token=access_token,
            token_type="bearer",
            user=UserInfo(id=user.id, name=user.name, role=user.role)
        )

    async def logout(self, token: str) -> dict:
        await revoke_session(self.redis, token)
        return {"message": "Logged out"}
