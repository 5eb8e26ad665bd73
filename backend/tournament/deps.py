from __future__ import annotations
from datetime import date
from fastapi import Depends
from redis.asyncio import Redis

from tournament.config import ContestConfig, settings
from tournament.services.contest_clock import contest_today
from tournament.services.exchange_rate import ExchangeRateProvider
from tournament.services.leaderboard import LeaderboardService
from tournament.services.leaderboard_cache import LeaderboardCache, create_redis

# Redis client (lazy single instance)
_redis: Redis | None = None


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = create_redis(settings.redis_url, settings.redis_timeout_seconds)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_contest() -> ContestConfig:
    return settings.contest


def get_today(contest: ContestConfig = Depends(get_contest)) -> date:
    return contest_today(contest)


def get_leaderboard_service(
    redis: Redis = Depends(get_redis),
    contest: ContestConfig = Depends(get_contest),
) -> LeaderboardService:
    cache = LeaderboardCache(
        redis,
        ttl_seconds=settings.leaderboard_cache_ttl_seconds,
        invalidation_timeout=settings.cache_invalidation_timeout_seconds,
    )
    return LeaderboardService(cache, contest, settings.ranking_query_timeout_seconds)


def get_rate_provider(redis: Redis = Depends(get_redis)) -> ExchangeRateProvider:
    return ExchangeRateProvider(
        redis,
        url=settings.exchange_rate_url,
        ttl_seconds=settings.exchange_rate_ttl_seconds,
        http_timeout=settings.exchange_rate_http_timeout_seconds,
    )
