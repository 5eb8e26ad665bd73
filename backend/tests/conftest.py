from __future__ import annotations
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BOT_TOKEN", "123456:test-bot-token")

import fnmatch
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from fastapi import Header, HTTPException
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tournament.auth_deps import get_telegram_user
from tournament.config import ContestConfig
from tournament.db import Base, get_session
from tournament.deps import get_contest, get_rate_provider, get_redis, get_today
from tournament.main import app
from tournament.schemas.auth import TelegramUser
from tournament.services.exchange_rate import ExchangeRateProvider
import tournament.models.participant  # noqa: F401  (register tables)
import tournament.models.deposit  # noqa: F401

CBR_URL = "https://cbr.test/daily_json.js"
USD_RUB = Decimal("90.0")


class FakeRedis:
    """In-memory stand-in for the handful of redis.asyncio commands the app issues."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = str(value)
        if ex is not None:
            self.ttls[key] = ex
        else:
            self.ttls.pop(key, None)
        return True

    async def incr(self, key):
        value = int(self.store.get(key, "0")) + 1
        self.store[key] = str(value)
        return value

    async def delete(self, *keys):
        removed = 0
        for k in keys:
            if self.store.pop(k, None) is not None:
                removed += 1
            self.ttls.pop(k, None)
        return removed

    async def scan_iter(self, match="*", count=None):
        for k in list(self.store):
            if fnmatch.fnmatchcase(k, match):
                yield k

    async def aclose(self):
        pass


class BrokenRedis:
    """Every command fails as if the server were unreachable."""

    def __getattr__(self, name):
        async def _fail(*args, **kwargs):
            raise RedisConnectionError("redis down")
        return _fail

    def scan_iter(self, *args, **kwargs):
        raise RedisConnectionError("redis down")


@dataclass
class Clock:
    today: date


def cbr_payload(usd: Decimal = USD_RUB) -> dict:
    return {"Valute": {"USD": {"Nominal": 1, "Value": float(usd)}, "EUR": {"Nominal": 1, "Value": 98.5}}}


@pytest.fixture
def contest() -> ContestConfig:
    return ContestConfig(
        timezone="Europe/Moscow",
        starts_on=date(2026, 3, 6),
        ends_on=date(2026, 3, 29),
        reference_currency="RUB",
        category_lower_bound=70000,
        category_upper_bound=250000,
    )


@pytest.fixture
def clock() -> Clock:
    return Clock(today=date(2026, 3, 9))


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def rate_http():
    """Mock CBR endpoint; flip `fail` to simulate an outage."""
    state = {"calls": 0, "fail": False}

    def handler(request: httpx.Request) -> httpx.Response:
        state["calls"] += 1
        if state["fail"]:
            return httpx.Response(502, json={"error": "bad gateway"})
        return httpx.Response(200, json=cbr_payload())

    state["client"] = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return state


@pytest_asyncio.fixture
async def client(session_factory, fake_redis, contest, clock, rate_http):
    """API client on SQLite + fake Redis; identity comes from an X-Test-User header."""

    async def _session():
        async with session_factory() as s:
            yield s

    async def _user(x_test_user: str | None = Header(default=None, alias="X-Test-User")) -> TelegramUser:
        if not x_test_user:
            raise HTTPException(status_code=401, detail="Missing X-Telegram-InitData header")
        return TelegramUser(id=int(x_test_user), first_name=f"user{x_test_user}", username=f"u{x_test_user}")

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_contest] = lambda: contest
    app.dependency_overrides[get_today] = lambda: clock.today
    app.dependency_overrides[get_telegram_user] = _user
    app.dependency_overrides[get_rate_provider] = lambda: ExchangeRateProvider(
        fake_redis, url=CBR_URL, http_client=rate_http["client"]
    )
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    await rate_http["client"].aclose()


def as_user(telegram_id: int) -> dict[str, str]:
    return {"X-Test-User": str(telegram_id)}


async def register(ac: httpx.AsyncClient, telegram_id: int, deposit: float = 100000, market: str = "moex", name: str | None = None):
    r = await ac.post("/api/user/register", headers=as_user(telegram_id), json={
        "displayName": name or f"Trader {telegram_id}",
        "avatarUrl": None,
        "market": market,
        "instruments": ["SBER", "GAZP"] if market == "moex" else ["BTCUSDT"],
        "initialDeposit": deposit,
    })
    assert r.status_code == 201, r.text
    return r.json()
