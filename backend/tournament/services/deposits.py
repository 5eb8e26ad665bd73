from __future__ import annotations
from datetime import date
from decimal import Decimal
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from tournament.config import ContestConfig
from tournament.models.participant import Participant
from tournament.services.contest_clock import is_contest_running
from tournament.services.leaderboard import LeaderboardService
from tournament.services.snapshots import upsert_snapshot

log = structlog.get_logger()


class ContestNotRunning(Exception):
    pass


async def record_deposit(
    session: AsyncSession,
    p: Participant,
    value: Decimal,
    today: date,
    contest: ContestConfig,
    leaderboard: LeaderboardService,
) -> date:
    """
    Upsert today's value, commit, then drop every cached leaderboard page.
    An invalidation failure is logged by the cache and does not fail the write.
    """
    if not is_contest_running(contest, today):
        raise ContestNotRunning(today)

    await upsert_snapshot(session, p.id, today, value)
    await session.commit()

    invalidated = await leaderboard.invalidate()
    log.info(
        "deposit.recorded",
        telegram_id=int(p.telegram_id),
        deposit_date=today.isoformat(),
        deposit_value=str(value),
        cache_invalidated=invalidated,
    )
    return today
