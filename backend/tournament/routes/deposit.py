from __future__ import annotations
from datetime import date
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tournament.auth_deps import get_telegram_user
from tournament.config import ContestConfig
from tournament.db import get_session
from tournament.deps import get_contest, get_leaderboard_service, get_today
from tournament.schemas.auth import TelegramUser
from tournament.schemas.deposit import DepositUpdateRequest, DepositUpdateResponse
from tournament.services.deposits import ContestNotRunning, record_deposit
from tournament.services.leaderboard import LeaderboardService
from tournament.services.participants import get_by_telegram_id

router = APIRouter(prefix="/api/deposit", tags=["deposit"])


@router.post("/update", response_model=DepositUpdateResponse)
async def update_deposit(
    payload: DepositUpdateRequest,
    session: AsyncSession = Depends(get_session),
    tg_user: TelegramUser = Depends(get_telegram_user),
    leaderboard: LeaderboardService = Depends(get_leaderboard_service),
    contest: ContestConfig = Depends(get_contest),
    today: date = Depends(get_today),
):
    """Report today's deposit value (contest timezone). Re-submitting the same day overwrites it."""
    p = await get_by_telegram_id(session, tg_user.id)
    if not p:
        raise HTTPException(status_code=404, detail="User not found. Please register first.")
    try:
        deposit_date = await record_deposit(session, p, payload.deposit_value, today, contest, leaderboard)
    except ContestNotRunning:
        raise HTTPException(
            status_code=409,
            detail=f"Contest is not running on {today.isoformat()} ({contest.starts_on.isoformat()} .. {contest.ends_on.isoformat()})",
        )
    return DepositUpdateResponse(deposit_date=deposit_date, deposit_value=float(payload.deposit_value))
