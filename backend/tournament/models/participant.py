from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    JSON, BigInteger, Boolean, CheckConstraint, DateTime, Integer, Numeric, SmallInteger, String, Text, func,
)
from sqlalchemy.dialects.postgresql import JSONB
from tournament.db import Base

MARKETS = ("crypto", "moex", "forex")


class Participant(Base):
    """
    A registered competitor.
    telegram_id is the external identity; market, instruments, initial_deposit
    and deposit_category are fixed at registration.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, index=True, nullable=False)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    photo_url: Mapped[str | None] = mapped_column(Text(), nullable=True)

    market: Mapped[str] = mapped_column(String(10), index=True, nullable=False)  # crypto | moex | forex
    instruments: Mapped[list[str]] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)
    initial_deposit: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(4), nullable=False)  # USDT | RUB | USD
    deposit_category: Mapped[int | None] = mapped_column(SmallInteger, index=True, nullable=True)  # 1 | 2 | 3

    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    consented_pd: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    consented_rules: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("market IN ('crypto', 'moex', 'forex')", name="ck_users_market"),
        CheckConstraint("deposit_category IS NULL OR deposit_category IN (1, 2, 3)", name="ck_users_deposit_category"),
        CheckConstraint("initial_deposit > 0", name="ck_users_initial_deposit_positive"),
    )
