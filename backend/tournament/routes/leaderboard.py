from __future__ import annotations
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tournament.config import settings
from tournament.db import get_session
from tournament.deps import get_leaderboard_service, get_today
from tournament.schemas.leaderboard import CategoryParam, LeaderboardResponse
from tournament.services.leaderboard import LeaderboardService, RankingUnavailable

router = APIRouter(prefix="/api", tags=["leaderboard"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    category: CategoryParam = Query(default="all"),
    page: int = Query(default=1, ge=1, le=settings.leaderboard_max_page),
    limit: int = Query(default=settings.leaderboard_default_limit, ge=1, le=settings.leaderboard_max_limit),
    user_id: int | None = Query(default=None, alias="userId", ge=1),
    session: AsyncSession = Depends(get_session),
    leaderboard: LeaderboardService = Depends(get_leaderboard_service),
    today: date = Depends(get_today),
):
    """
    Participants ranked by P&L % (latest reported deposit vs initial deposit).
    The page is cached per (category, page, limit); `currentUser` is always computed fresh.
    """
    try:
        page_data = await leaderboard.get_page(session, category, page, limit, today)
    except RankingUnavailable:
        raise HTTPException(status_code=503, detail="Leaderboard temporarily unavailable")

    current_user = None
    if user_id is not None:
        lookup = await leaderboard.lookup_current_user(session, user_id, category, today)
        current_user = lookup.entry

    return leaderboard.build_response(page_data, user_id, current_user)
