from __future__ import annotations
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tournament.config import settings
from tournament.db import get_session

log = structlog.get_logger()

router = APIRouter()

@router.get("/health")
async def health(request: Request, session: AsyncSession = Depends(get_session)):
    body = {
        "status": "ok",
        "env": settings.environment,
        "time": datetime.now(timezone.utc).isoformat(),
        "request_id": request.headers.get("x-request-id") or request.state.request_id,
    }
    try:
        await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        log.error("health.db_unreachable", error=repr(e))
        return JSONResponse(status_code=503, content={**body, "status": "degraded", "db": "unreachable"})
    return body

@router.get("/version")
async def version():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "git_sha": settings.git_sha,
        "contest": {
            "timezone": settings.contest.timezone,
            "starts_on": settings.contest.starts_on.isoformat(),
            "ends_on": settings.contest.ends_on.isoformat(),
        },
    }
