from __future__ import annotations
import os
from datetime import date
from pydantic import BaseModel, Field, model_validator


class ContestConfig(BaseModel):
    """
    Tournament rules shared by the clock, classifier and leaderboard.
    All calendar dates are interpreted in `timezone`.
    """
    timezone: str = os.getenv("CONTEST_TIMEZONE", "Europe/Moscow")
    starts_on: date = date.fromisoformat(os.getenv("CONTEST_START", "2026-03-06"))
    ends_on: date = date.fromisoformat(os.getenv("CONTEST_END", "2026-03-29"))
    reference_currency: str = os.getenv("CONTEST_REFERENCE_CURRENCY", "RUB")
    # category 1: < lower, category 2: [lower, upper), category 3: >= upper
    category_lower_bound: int = Field(default=int(os.getenv("CATEGORY_LOWER_BOUND", "70000")), gt=0)
    category_upper_bound: int = Field(default=int(os.getenv("CATEGORY_UPPER_BOUND", "250000")), gt=0)

    @model_validator(mode="after")
    def check_ordering(self):
        if self.ends_on < self.starts_on:
            raise ValueError("contest end must not precede contest start")
        if self.category_upper_bound <= self.category_lower_bound:
            raise ValueError("category upper bound must exceed lower bound")
        return self


class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "deposit-tournament-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Trading Tournament")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/tournament_dev")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")
    redis_timeout_seconds: float = float(os.getenv("REDIS_TIMEOUT_SECONDS", "0.5"))

    # Telegram WebApp identity
    bot_token: str = os.getenv("BOT_TOKEN", "")
    auth_dev_bypass: bool = os.getenv("AUTH_DEV_BYPASS", "0") == "1"

    # Leaderboard
    leaderboard_cache_ttl_seconds: int = int(os.getenv("LEADERBOARD_CACHE_TTL_SECONDS", "60"))
    leaderboard_default_limit: int = int(os.getenv("LEADERBOARD_DEFAULT_LIMIT", "200"))
    leaderboard_max_limit: int = int(os.getenv("LEADERBOARD_MAX_LIMIT", "500"))
    leaderboard_max_page: int = int(os.getenv("LEADERBOARD_MAX_PAGE", "10000"))
    ranking_query_timeout_seconds: float = float(os.getenv("RANKING_QUERY_TIMEOUT_SECONDS", "10"))
    cache_invalidation_timeout_seconds: float = float(os.getenv("CACHE_INVALIDATION_TIMEOUT_SECONDS", "2"))

    # USD/RUB feed (Central Bank of Russia daily JSON)
    exchange_rate_url: str = os.getenv("EXCHANGE_RATE_URL", "https://www.cbr-xml-daily.ru/daily_json.js")
    exchange_rate_ttl_seconds: int = int(os.getenv("EXCHANGE_RATE_TTL_SECONDS", str(24 * 60 * 60)))
    exchange_rate_http_timeout_seconds: float = float(os.getenv("EXCHANGE_RATE_HTTP_TIMEOUT_SECONDS", "8"))

    contest: ContestConfig = ContestConfig()

settings = Settings()
