from __future__ import annotations
from datetime import date, datetime, timezone as dt_tz
from zoneinfo import ZoneInfo

from tournament.config import ContestConfig


def contest_today(contest: ContestConfig, now_utc: datetime | None = None) -> date:
    """
    Calendar date of `now_utc` in the contest's canonical timezone.

    Every participant's deposit is bucketed by this date, never by a
    client-supplied offset, so snapshots from different participants line up
    on the same day.

    Examples:
        >>> from datetime import datetime, timezone
        >>> cfg = ContestConfig(timezone="Europe/Moscow")
        >>> contest_today(cfg, datetime(2026, 3, 9, 22, 30, tzinfo=timezone.utc))
        datetime.date(2026, 3, 10)  # 01:30 MSK
    """
    now_utc = now_utc or datetime.now(dt_tz.utc)
    if now_utc.tzinfo is None:
        now_utc = now_utc.replace(tzinfo=dt_tz.utc)
    return now_utc.astimezone(ZoneInfo(contest.timezone)).date()


def is_contest_running(contest: ContestConfig, d: date) -> bool:
    return contest.starts_on <= d <= contest.ends_on


def ranking_as_of(contest: ContestConfig, today: date) -> date:
    """As-of date for the leaderboard: frozen at the last contest day once the contest is over."""
    return min(today, contest.ends_on)

