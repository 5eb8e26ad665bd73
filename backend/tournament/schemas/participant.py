from __future__ import annotations
import datetime as dt
from decimal import Decimal
from typing import Annotated
from pydantic import Field, StringConstraints, field_validator
from tournament.schemas.base import CamelModel
from tournament.schemas.leaderboard import Market

Instrument = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]


class RegisterRequest(CamelModel):
    display_name: str = Field(min_length=1, max_length=128)
    avatar_url: str | None = Field(default=None, max_length=2048)
    market: Market
    instruments: list[Instrument] = Field(min_length=1)
    initial_deposit: Decimal = Field(gt=0, max_digits=18, decimal_places=2)

    @field_validator("instruments")
    @classmethod
    def unique_instruments(cls, v: list[str]):
        # keep first-seen order
        return list(dict.fromkeys(v))


class ProfileUpdate(CamelModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=128)
    photo_url: str | None = None


class UserStatus(CamelModel):
    registered: bool
    deposit_updated_today: bool = False
    telegram_id: int
    display_name: str = ""
    market: Market | None = None
    instruments: list[str] = Field(default_factory=list)
    initial_deposit: float = 0
    currency: str = "USDT"
    avatar_url: str | None = None
    deposit_category: int | None = None


class HistoryEntry(CamelModel):
    date: dt.date
    date_label: str            # DD.MM
    amount: float
    daily_change: float | None  # % vs previous report, None for the first one


class HistoryResponse(CamelModel):
    days_participated: int
    initial_deposit: float
    current_deposit: float
    pnl_percent: float
    pnl_absolute: float
    currency: str
    entries: list[HistoryEntry]
