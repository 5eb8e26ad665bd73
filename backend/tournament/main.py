from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from tournament.config import settings
from tournament.db import engine
from tournament.deps import close_redis
from tournament.logging_setup import configure_logging
from tournament.routes.system import router as system_router
from tournament.routes.leaderboard import router as leaderboard_router
from tournament.routes.deposit import router as deposit_router
from tournament.routes.users import router as users_router
import structlog

configure_logging(settings.log_level)
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info(
        "startup",
        env=settings.environment,
        version=settings.app_version,
        git_sha=settings.git_sha,
        contest_start=settings.contest.starts_on.isoformat(),
        contest_end=settings.contest.ends_on.isoformat(),
        contest_tz=settings.contest.timezone,
    )
    yield
    # Shutdown
    await close_redis()
    await engine.dispose()
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} API: deposit competition leaderboard for the Telegram Mini App",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "X-Telegram-InitData", "X-Request-ID"],
)

# Include routers
app.include_router(system_router)
app.include_router(leaderboard_router)
app.include_router(deposit_router)
app.include_router(users_router)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid, path=request.url.path)
    try:
        response: Response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()
    response.headers["X-Request-ID"] = rid
    return response
