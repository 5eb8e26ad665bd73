from __future__ import annotations
import hashlib
import hmac
import json
from urllib.parse import parse_qsl
from pydantic import ValidationError
from tournament.schemas.auth import TelegramUser

WEBAPP_KEY = b"WebAppData"


def _secret_key(bot_token: str) -> bytes:
    return hmac.new(WEBAPP_KEY, bot_token.encode(), hashlib.sha256).digest()


def data_check_string(fields: dict[str, str]) -> str:
    return "\n".join(f"{k}={v}" for k, v in sorted(fields.items()) if k != "hash")


def sign_init_data(fields: dict[str, str], bot_token: str) -> str:
    """Hex HMAC-SHA256 of the data-check string, as Telegram computes the `hash` field."""
    return hmac.new(_secret_key(bot_token), data_check_string(fields).encode(), hashlib.sha256).hexdigest()


def verify_init_data(init_data: str, bot_token: str) -> TelegramUser | None:
    """
    Validate Telegram WebApp initData and return the embedded user.
    Returns None on a missing/forged hash or a malformed `user` field.
    """
    fields = dict(parse_qsl(init_data, keep_blank_values=True))
    received = fields.get("hash")
    if not received:
        return None
    if not hmac.compare_digest(sign_init_data(fields, bot_token), received):
        return None
    raw_user = fields.get("user")
    if not raw_user:
        return None
    try:
        return TelegramUser.model_validate(json.loads(raw_user))
    except (ValueError, ValidationError):
        return None
