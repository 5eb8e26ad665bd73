from __future__ import annotations
import structlog
from fastapi import Header, HTTPException
from tournament.config import settings
from tournament.schemas.auth import TelegramUser
from tournament.security import verify_init_data

log = structlog.get_logger()

DEV_TELEGRAM_USER = TelegramUser(id=123456789, first_name="Dev", last_name="User", username="dev_trader")


async def get_telegram_user(
    init_data: str | None = Header(default=None, alias="X-Telegram-InitData"),
) -> TelegramUser:
    if settings.environment == "dev" and settings.auth_dev_bypass:
        return DEV_TELEGRAM_USER
    if not init_data:
        raise HTTPException(status_code=401, detail="Missing X-Telegram-InitData header")
    if not settings.bot_token:
        log.error("auth.bot_token_missing")
        raise HTTPException(status_code=500, detail="Server configuration error")
    user = verify_init_data(init_data, settings.bot_token)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid or expired Telegram initData")
    return user
