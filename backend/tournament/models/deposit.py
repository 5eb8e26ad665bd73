from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, UniqueConstraint, func
from tournament.db import Base


class DepositSnapshot(Base):
    """
    One reported deposit value per participant per contest calendar date.
    A resubmission for the same date overwrites deposit_value (upsert on the unique pair).
    """
    __tablename__ = "deposit_updates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    deposit_date: Mapped[date] = mapped_column(Date, nullable=False)
    deposit_value: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "deposit_date", name="uq_deposit_updates_user_date"),
        Index("ix_deposit_updates_user_date", "user_id", "deposit_date"),
        Index("ix_deposit_updates_date", "deposit_date"),
    )
