"""
Exchange rates from the Central Bank of Russia daily feed.

Lookup order:
  1. fresh value in Redis (TTL, default 24h)
  2. live fetch -> stored fresh and as last-known-good
  3. last-known-good value (no TTL)
Then ExchangeRateUnavailable. There is no hard-coded default rate.
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation
import httpx
import structlog
from redis.asyncio import Redis

from tournament.services.leaderboard_cache import CACHE_ERRORS

log = structlog.get_logger()

BASE_CURRENCY = "RUB"


class ExchangeRateUnavailable(Exception):
    """No live or previously known rate; the caller should retry later."""


class ExchangeRateProvider:
    def __init__(
        self,
        redis: Redis,
        url: str,
        ttl_seconds: int = 24 * 60 * 60,
        http_timeout: float = 8.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._redis = redis
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.http_timeout = http_timeout
        self._http_client = http_client

    @staticmethod
    def _key(from_currency: str, to_currency: str) -> str:
        return f"exchange:{from_currency.lower()}_{to_currency.lower()}"

    async def get_rate(self, from_currency: str, to_currency: str) -> Decimal:
        from_currency, to_currency = from_currency.upper(), to_currency.upper()
        if from_currency == to_currency:
            return Decimal(1)

        key = self._key(from_currency, to_currency)
        cached = await self._read(key)
        if cached is not None:
            return cached

        try:
            rate = await self._fetch(from_currency, to_currency)
        except (httpx.HTTPError, ValueError, KeyError, TypeError, InvalidOperation) as e:
            log.warning("exchange_rate.fetch_failed", pair=f"{from_currency}/{to_currency}", error=repr(e))
        else:
            await self._store(key, rate)
            return rate

        stale = await self._read(f"{key}:last_good")
        if stale is not None:
            log.warning("exchange_rate.using_last_known", pair=f"{from_currency}/{to_currency}", rate=str(stale))
            return stale
        raise ExchangeRateUnavailable(f"{from_currency}/{to_currency} rate unavailable")

    async def _read(self, key: str) -> Decimal | None:
        try:
            raw = await self._redis.get(key)
        except CACHE_ERRORS as e:
            log.warning("exchange_rate.cache_read_failed", key=key, error=repr(e))
            return None
        if not raw:
            return None
        try:
            return Decimal(raw)
        except InvalidOperation:
            return None

    async def _store(self, key: str, rate: Decimal) -> None:
        value = str(rate)
        try:
            await self._redis.set(key, value, ex=self.ttl_seconds)
            await self._redis.set(f"{key}:last_good", value)
        except CACHE_ERRORS as e:
            log.warning("exchange_rate.cache_write_failed", key=key, error=repr(e))

    async def _fetch(self, from_currency: str, to_currency: str) -> Decimal:
        if self._http_client is not None:
            r = await self._http_client.get(self.url, timeout=self.http_timeout)
        else:
            async with httpx.AsyncClient(timeout=self.http_timeout) as client:
                r = await client.get(self.url)
        r.raise_for_status()
        valutes = r.json()["Valute"]
        rate = _per_base(valutes, from_currency) / _per_base(valutes, to_currency)
        return rate.quantize(Decimal("0.0001"))


def _per_base(valutes: dict, code: str) -> Decimal:
    """Units of the base currency (RUB) per one unit of `code`."""
    if code == BASE_CURRENCY:
        return Decimal(1)
    v = valutes[code]
    value, nominal = Decimal(str(v["Value"])), Decimal(str(v["Nominal"]))
    if value <= 0 or nominal <= 0:
        raise ValueError(f"unexpected {code} quote in feed")
    return value / nominal
