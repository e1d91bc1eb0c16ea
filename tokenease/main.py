from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from tokenease.core.config import settings
from tokenease.core.exceptions import BookingRejected, InvalidConfiguration, InvalidTransition, StoreUnavailable
from tokenease.core.logger import logger
from tokenease.middleware.log_middleware import LogMiddleware

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

from fastapi.middleware.cors import CORSMiddleware

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LogMiddleware)

@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "current": exc.current, "target": exc.target}
    )

@app.exception_handler(BookingRejected)
async def booking_rejected_handler(request: Request, exc: BookingRejected):
    status_code = 403 if exc.code == "account_blocked" else 409
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "code": exc.code})

@app.exception_handler(InvalidConfiguration)
async def invalid_configuration_handler(request: Request, exc: InvalidConfiguration):
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Server misconfiguration"})

@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error(f"Store unavailable on {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable"})

@app.get("/")
async def root():
    return {"message": "Welcome to TokenEase API"}

from tokenease.api.api import api_router
app.include_router(api_router, prefix=settings.API_V1_STR)
