"""
Leaderboard ranking as a pipeline of pure functions:

    filter -> resolve current -> resolve baseline -> percent change -> sort -> rank -> paginate

Nothing here touches the database or the cache; rows come from
`tournament.services.snapshots.load_ranking_rows`.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Sequence

from tournament.schemas.leaderboard import RankedEntry

_CENT = Decimal("0.01")
_HUNDRED = Decimal(100)
_ZERO = Decimal(0)


@dataclass(frozen=True)
class RankingRow:
    participant_id: int
    external_id: int
    display_name: str
    avatar_url: str | None
    market: str
    instruments: tuple[str, ...]
    initial_deposit: Decimal
    deposit_category: int | None
    registered_at: datetime
    latest_value: Decimal | None  # latest snapshot at or before the as-of date


@dataclass(frozen=True)
class ScoredRow:
    row: RankingRow
    current: Decimal
    baseline: Decimal
    pnl: Decimal


@dataclass(frozen=True)
class RankingPage:
    entries: list[RankedEntry]
    total_count: int


def filter_category(rows: Iterable[RankingRow], category: int | None) -> list[RankingRow]:
    if category is None:
        return list(rows)
    return [r for r in rows if r.deposit_category == category]


def resolve_current(row: RankingRow) -> Decimal:
    return row.latest_value if row.latest_value is not None else row.initial_deposit


def resolve_baseline(row: RankingRow) -> Decimal:
    # Single contest-long leaderboard: the reference is always the registered deposit.
    return row.initial_deposit


def pnl_percent(current: Decimal, baseline: Decimal) -> Decimal:
    """
    Percent change from baseline, rounded half-up to 2 decimals.
    A zero baseline yields 0.00 so the sort never sees an undefined value.
    """
    assert baseline >= _ZERO, f"negative baseline {baseline}"
    if baseline == _ZERO:
        return _ZERO.quantize(_CENT)
    return ((current - baseline) / baseline * _HUNDRED).quantize(_CENT, rounding=ROUND_HALF_UP)


def score(rows: Iterable[RankingRow]) -> list[ScoredRow]:
    scored = []
    for r in rows:
        current, baseline = resolve_current(r), resolve_baseline(r)
        scored.append(ScoredRow(row=r, current=current, baseline=baseline, pnl=pnl_percent(current, baseline)))
    return scored


def sort_key(s: ScoredRow) -> tuple[Decimal, datetime, int]:
    # Best gain first; earlier registration wins an exact tie; surrogate id makes the order total.
    return (-s.pnl, s.row.registered_at, s.row.participant_id)


def order(scored: Iterable[ScoredRow]) -> list[ScoredRow]:
    return sorted(scored, key=sort_key)


def to_entry(s: ScoredRow, position: int) -> RankedEntry:
    r = s.row
    return RankedEntry(
        position=position,
        external_id=r.external_id,
        display_name=r.display_name,
        avatar_url=r.avatar_url,
        market=r.market,
        instruments=list(r.instruments),
        pnl_percent=float(s.pnl),
        is_current_user=False,
        deposit_category=r.deposit_category,
    )


def paginate(ordered: Sequence[ScoredRow], page: int, limit: int) -> list[RankedEntry]:
    """Slice one page; positions are global (page 2 of 20 starts at 21)."""
    assert page >= 1 and limit >= 1, f"invalid page/limit {page}/{limit}"
    offset = (page - 1) * limit
    return [to_entry(s, offset + i + 1) for i, s in enumerate(ordered[offset:offset + limit])]


def compute_ranking(rows: Iterable[RankingRow], category: int | None, page: int, limit: int) -> RankingPage:
    filtered = filter_category(rows, category)
    ordered = order(score(filtered))
    return RankingPage(entries=paginate(ordered, page, limit), total_count=len(filtered))


def rank_of(rows: Iterable[RankingRow], category: int | None, external_id: int) -> RankedEntry | None:
    """
    Global standing of one participant within the filtered ordering.
    Position = 1 + number of rows that sort strictly before it.
    Returns None when the participant is unknown or filtered out.
    """
    scored = score(filter_category(rows, category))
    target = next((s for s in scored if s.row.external_id == external_id), None)
    if target is None:
        return None
    key = sort_key(target)
    ahead = sum(1 for s in scored if sort_key(s) < key)
    entry = to_entry(target, ahead + 1)
    entry.is_current_user = True
    return entry
