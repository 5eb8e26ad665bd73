from __future__ import annotations
from typing import Literal
from pydantic import Field
from tournament.schemas.base import CamelModel

CategoryParam = Literal["all", "1", "2", "3"]
Market = Literal["crypto", "moex", "forex"]


class RankedEntry(CamelModel):
    position: int = Field(ge=1)
    external_id: int
    display_name: str
    avatar_url: str | None = None
    market: Market
    instruments: list[str]
    pnl_percent: float
    is_current_user: bool = False
    deposit_category: int | None = None


class LeaderboardPage(CamelModel):
    """Category-scoped page as stored in the cache (no viewer-specific fields)."""
    category: CategoryParam
    total_participants: int = Field(ge=0)
    entries: list[RankedEntry]
    page: int = Field(ge=1)
    limit: int = Field(ge=1)


class LeaderboardResponse(LeaderboardPage):
    current_user: RankedEntry | None = None
