from __future__ import annotations
import asyncio
from dataclasses import dataclass
import structlog
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from tournament.schemas.leaderboard import LeaderboardPage

log = structlog.get_logger()

# Anything the backend can throw at us; all of it degrades to "miss".
CACHE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


def create_redis(url: str, timeout_seconds: float) -> Redis:
    # Lazy: no connection is opened until the first command.
    return Redis.from_url(
        url,
        socket_timeout=timeout_seconds,
        socket_connect_timeout=timeout_seconds,
        decode_responses=True,
    )


@dataclass(frozen=True)
class CacheProbe:
    page: LeaderboardPage | None
    generation: int | None  # None when the backend was unreachable


class LeaderboardCache:
    """
    Read-through cache of serialized leaderboard pages, owned by the leaderboard only.

    Keys carry a namespace generation:  <ns>:v<gen>:cat:<category>:page:<n>:limit:<n>
    `clear()` bumps the generation so every existing page becomes unreachable at once.
    A page is written under the generation read *before* it was computed, so a
    computation racing a deposit write can never repopulate the new generation
    with pre-write data.
    """

    def __init__(self, redis: Redis, ttl_seconds: int, namespace: str = "leaderboard", invalidation_timeout: float = 2.0):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._redis = redis
        self.ttl_seconds = ttl_seconds
        self.namespace = namespace
        self.invalidation_timeout = invalidation_timeout

    @property
    def generation_key(self) -> str:
        return f"{self.namespace}:generation"

    def key(self, category: str, page: int, limit: int, generation: int) -> str:
        return f"{self.namespace}:v{generation}:cat:{category}:page:{page}:limit:{limit}"

    async def generation(self) -> int:
        raw = await self._redis.get(self.generation_key)
        return int(raw) if raw else 0

    async def get(self, category: str, page: int, limit: int) -> CacheProbe:
        try:
            generation = await self.generation()
            raw = await self._redis.get(self.key(category, page, limit, generation))
        except CACHE_ERRORS as e:
            log.warning("leaderboard_cache.read_failed", error=repr(e))
            return CacheProbe(page=None, generation=None)
        except ValueError as e:
            # a non-integer counter reads as unreachable so no page is written under it
            log.warning("leaderboard_cache.bad_generation", key=self.generation_key, error=repr(e))
            return CacheProbe(page=None, generation=None)
        if raw is None:
            return CacheProbe(page=None, generation=generation)
        try:
            cached = LeaderboardPage.model_validate_json(raw)
        except ValidationError:
            log.warning("leaderboard_cache.corrupt_entry", key=self.key(category, page, limit, generation))
            return CacheProbe(page=None, generation=generation)
        return CacheProbe(page=cached, generation=generation)

    async def put(self, category: str, page: int, limit: int, payload: LeaderboardPage, generation: int | None) -> bool:
        if generation is None:
            return False
        try:
            await self._redis.set(
                self.key(category, page, limit, generation),
                payload.model_dump_json(by_alias=True),
                ex=self.ttl_seconds,
            )
        except CACHE_ERRORS as e:
            log.warning("leaderboard_cache.write_failed", error=repr(e))
            return False
        return True

    async def clear(self) -> bool:
        """
        Invalidate the whole namespace. Never raises: on failure the stale pages
        simply live until their TTL expires.
        """
        try:
            generation = await asyncio.wait_for(self._redis.incr(self.generation_key), self.invalidation_timeout)
        except CACHE_ERRORS as e:
            log.warning("leaderboard_cache.invalidate_failed", error=repr(e))
            return False
        log.info("leaderboard_cache.invalidated", generation=generation)
        try:
            await asyncio.wait_for(self._sweep(generation), self.invalidation_timeout)
        except CACHE_ERRORS as e:
            # Old generations are unreachable already; leftovers expire by TTL.
            log.info("leaderboard_cache.sweep_incomplete", error=repr(e))
        return True

    async def _sweep(self, current_generation: int) -> None:
        live_prefix = f"{self.namespace}:v{current_generation}:"
        stale = []
        async for key in self._redis.scan_iter(match=f"{self.namespace}:v*", count=100):
            if not key.startswith(live_prefix):
                stale.append(key)
        if stale:
            await self._redis.delete(*stale)
