from __future__ import annotations
from datetime import date
import structlog
from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.ext.asyncio import AsyncSession

from tournament.auth_deps import get_telegram_user
from tournament.config import ContestConfig
from tournament.db import get_session
from tournament.deps import get_contest, get_leaderboard_service, get_rate_provider, get_today
from tournament.schemas.auth import TelegramUser
from tournament.schemas.participant import HistoryResponse, ProfileUpdate, RegisterRequest, UserStatus
from tournament.services.exchange_rate import ExchangeRateProvider, ExchangeRateUnavailable
from tournament.services.leaderboard import LeaderboardService
from tournament.services.participants import (
    AlreadyRegistered, ParticipantNotFound, deposit_history, get_by_telegram_id, register, require_participant,
    update_profile, user_status,
)

log = structlog.get_logger()

router = APIRouter(prefix="/api/user", tags=["users"])

RATE_RETRY_AFTER_SECONDS = 60


@router.get("/{telegram_id}/status", response_model=UserStatus)
async def get_status(
    telegram_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
):
    p = await get_by_telegram_id(session, telegram_id)
    if not p:
        return UserStatus(registered=False, telegram_id=telegram_id)
    return await user_status(session, p, today)


@router.post("/register", response_model=UserStatus, status_code=201)
async def register_user(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_session),
    tg_user: TelegramUser = Depends(get_telegram_user),
    rates: ExchangeRateProvider = Depends(get_rate_provider),
    leaderboard: LeaderboardService = Depends(get_leaderboard_service),
    contest: ContestConfig = Depends(get_contest),
    today: date = Depends(get_today),
):
    try:
        p = await register(session, tg_user, payload, rates, contest, today)
    except AlreadyRegistered:
        raise HTTPException(status_code=409, detail="User already registered")
    except ExchangeRateUnavailable:
        log.warning("participant.register_rate_unavailable", telegram_id=tg_user.id, market=payload.market)
        raise HTTPException(
            status_code=503,
            detail="Exchange rate unavailable, please retry later",
            headers={"Retry-After": str(RATE_RETRY_AFTER_SECONDS)},
        )
    # a new participant changes totals and positions on every page
    await leaderboard.invalidate()
    return await user_status(session, p, today)


@router.patch("/{telegram_id}/profile", response_model=UserStatus)
async def patch_profile(
    payload: ProfileUpdate,
    telegram_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    tg_user: TelegramUser = Depends(get_telegram_user),
    leaderboard: LeaderboardService = Depends(get_leaderboard_service),
    today: date = Depends(get_today),
):
    if tg_user.id != telegram_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    # display_name cannot be cleared, so a null one counts as absent
    if payload.display_name is None and "photo_url" not in payload.model_fields_set:
        raise HTTPException(status_code=400, detail="No fields to update")
    try:
        p = await require_participant(session, telegram_id)
    except ParticipantNotFound:
        raise HTTPException(status_code=404, detail="User not found")
    p = await update_profile(session, p, payload)
    # names and avatars are part of cached pages
    await leaderboard.invalidate()
    return await user_status(session, p, today)


@router.get("/{telegram_id}/history", response_model=HistoryResponse)
async def get_history(
    telegram_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    tg_user: TelegramUser = Depends(get_telegram_user),
):
    try:
        p = await require_participant(session, telegram_id)
    except ParticipantNotFound:
        raise HTTPException(status_code=404, detail="User not found")
    return await deposit_history(session, p)
