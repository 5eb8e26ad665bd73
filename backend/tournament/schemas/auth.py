from __future__ import annotations
from pydantic import BaseModel, StrictInt, StrictStr


class TelegramUser(BaseModel):
    """User object embedded in verified WebApp initData."""
    id: StrictInt
    first_name: StrictStr
    last_name: str | None = None
    username: str | None = None
    photo_url: str | None = None
