from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import PyJWTError

from tokenease.core.config import settings
from tokenease.core.redis import RedisClient, get_redis
from tokenease.core.security import decode_access_token
from tokenease.core.session_context import SessionContext, load_session

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

async def get_session_context(
    token: str = Depends(oauth2_scheme),
    redis: RedisClient = Depends(get_redis)
) -> SessionContext:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        if payload.get("sub") is None:
            raise credentials_exception
    except PyJWTError:
        raise credentials_exception

    # A token only counts while its session is stored; logout deletes it
    context = await load_session(redis, token)
    if context is None or str(context.user_id) != payload["sub"]:
        raise credentials_exception
    return context

async def require_admin(context: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not context.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return context

async def require_patient(context: SessionContext = Depends(get_session_context)) -> SessionContext:
    if context.role != "patient":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Patient access required")
    return context
