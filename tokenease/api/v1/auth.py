from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tokenease.api.deps import get_session_context, oauth2_scheme
from tokenease.core.redis import RedisClient, get_redis
from tokenease.core.session_context import SessionContext
from tokenease.db.session import get_session
from tokenease.schemas.auth import LoginRequest, LoginResponse
from tokenease.services.auth_service import AuthService

router = APIRouter()

async def get_auth_service(
    session: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis)
) -> AuthService:
    return AuthService(session, redis)

@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    return await service.login(login_data)

@router.post("/logout")
async def logout(
    token: str = Depends(oauth2_scheme),
    context: SessionContext = Depends(get_session_context),
    service: AuthService = Depends(get_auth_service)
):
    return await service.logout(token)
