from __future__ import annotations
import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Literal
import structlog
from sqlalchemy import select, exists
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tournament.config import ContestConfig
from tournament.models.participant import Participant
from tournament.schemas.leaderboard import LeaderboardPage, LeaderboardResponse, RankedEntry
from tournament.services.contest_clock import ranking_as_of
from tournament.services.leaderboard_cache import LeaderboardCache
from tournament.services.ranking import compute_ranking, rank_of
from tournament.services.snapshots import load_ranking_rows

log = structlog.get_logger()


class RankingUnavailable(Exception):
    """The ranking query did not finish within its time budget."""


LookupStatus = Literal["ranked", "filtered_out", "not_registered", "unavailable"]


@dataclass(frozen=True)
class CurrentUserLookup:
    status: LookupStatus
    entry: RankedEntry | None = None


def parse_category(category: str) -> int | None:
    return None if category == "all" else int(category)


class LeaderboardService:
    def __init__(self, cache: LeaderboardCache, contest: ContestConfig, query_timeout: float):
        self.cache = cache
        self.contest = contest
        self.query_timeout = query_timeout

    async def get_page(self, session: AsyncSession, category: str, page: int, limit: int, today: date) -> LeaderboardPage:
        probe = await self.cache.get(category, page, limit)
        if probe.page is not None:
            return probe.page

        as_of = ranking_as_of(self.contest, today)
        try:
            result = await asyncio.wait_for(self._compute(session, category, page, limit, as_of), self.query_timeout)
        except asyncio.TimeoutError:
            log.error("leaderboard.query_timeout", category=category, page=page, limit=limit, timeout=self.query_timeout)
            raise RankingUnavailable()
        await self.cache.put(category, page, limit, result, probe.generation)
        return result

    async def _compute(self, session: AsyncSession, category: str, page: int, limit: int, as_of: date) -> LeaderboardPage:
        cat = parse_category(category)
        rows = await load_ranking_rows(session, cat, as_of)
        ranking = compute_ranking(rows, cat, page, limit)
        return LeaderboardPage(
            category=category,
            total_participants=ranking.total_count,
            entries=ranking.entries,
            page=page,
            limit=limit,
        )

    async def lookup_current_user(self, session: AsyncSession, external_id: int, category: str, today: date) -> CurrentUserLookup:
        """Always fresh; never cached per viewer."""
        cat = parse_category(category)
        as_of = ranking_as_of(self.contest, today)
        try:
            rows = await asyncio.wait_for(load_ranking_rows(session, cat, as_of), self.query_timeout)
            entry = rank_of(rows, cat, external_id)
            if entry is not None:
                return CurrentUserLookup(status="ranked", entry=entry)
            registered = await session.scalar(select(exists().where(Participant.telegram_id == external_id)))
        except (SQLAlchemyError, asyncio.TimeoutError) as e:
            log.warning("leaderboard.current_user_failed", external_id=external_id, error=repr(e))
            return CurrentUserLookup(status="unavailable")
        return CurrentUserLookup(status="filtered_out" if registered else "not_registered")

    def build_response(self, page: LeaderboardPage, viewer_id: int | None, current_user: RankedEntry | None) -> LeaderboardResponse:
        # Viewer marking happens after the cache so cached pages stay viewer-neutral.
        entries = [
            e.model_copy(update={"is_current_user": viewer_id is not None and e.external_id == viewer_id})
            for e in page.entries
        ]
        return LeaderboardResponse(
            category=page.category,
            total_participants=page.total_participants,
            entries=entries,
            current_user=current_user,
            page=page.page,
            limit=page.limit,
        )

    async def invalidate(self) -> bool:
        return await self.cache.clear()
