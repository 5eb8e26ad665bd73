from __future__ import annotations
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tournament.config import ContestConfig
from tournament.models.participant import Participant
from tournament.schemas.auth import TelegramUser
from tournament.schemas.participant import HistoryEntry, HistoryResponse, ProfileUpdate, RegisterRequest, UserStatus
from tournament.services.categories import MARKET_CURRENCY, classify_deposit, rate_currency
from tournament.services.exchange_rate import ExchangeRateProvider
from tournament.services.snapshots import has_snapshot_on, insert_snapshot_if_absent, snapshot_history

log = structlog.get_logger()

_CENT = Decimal("0.01")


class ParticipantNotFound(Exception):
    pass


class AlreadyRegistered(Exception):
    pass


async def get_by_telegram_id(session: AsyncSession, telegram_id: int) -> Participant | None:
    return await session.scalar(select(Participant).where(Participant.telegram_id == telegram_id))


async def require_participant(session: AsyncSession, telegram_id: int) -> Participant:
    p = await get_by_telegram_id(session, telegram_id)
    if p is None:
        raise ParticipantNotFound(telegram_id)
    return p


async def register(
    session: AsyncSession,
    tg_user: TelegramUser,
    payload: RegisterRequest,
    rates: ExchangeRateProvider,
    contest: ContestConfig,
    today: date,
) -> Participant:
    """
    Create the participant once; a second attempt for the same Telegram id is rejected.
    The deposit category is computed here, once, and persisted.
    Raises AlreadyRegistered, ExchangeRateUnavailable.
    """
    if await get_by_telegram_id(session, tg_user.id):
        raise AlreadyRegistered(tg_user.id)

    currency = MARKET_CURRENCY[payload.market]
    rate = None
    if rate_currency(currency) != contest.reference_currency:
        rate = await rates.get_rate(rate_currency(currency), contest.reference_currency)
    category = classify_deposit(payload.initial_deposit, currency, contest, rate)

    p = Participant(
        telegram_id=tg_user.id,
        username=tg_user.username,
        display_name=payload.display_name,
        photo_url=payload.avatar_url,
        market=payload.market,
        instruments=list(payload.instruments),
        initial_deposit=payload.initial_deposit,
        currency=currency,
        deposit_category=category,
        consented_pd=True,  # implicit consent by completing the wizard
        consented_rules=True,
    )
    session.add(p)
    try:
        await session.flush()
    except IntegrityError:
        # concurrent registration for the same telegram_id
        await session.rollback()
        raise AlreadyRegistered(tg_user.id)

    # Opening snapshot on the registration day
    await insert_snapshot_if_absent(session, p.id, today, payload.initial_deposit)
    await session.commit()
    await session.refresh(p)
    log.info(
        "participant.registered",
        telegram_id=tg_user.id,
        market=p.market,
        currency=currency,
        rate=str(rate) if rate is not None else None,
        deposit_category=category,
    )
    return p


async def update_profile(session: AsyncSession, p: Participant, payload: ProfileUpdate) -> Participant:
    """Only the display name and the avatar reference are mutable."""
    fields = payload.model_fields_set
    if "display_name" in fields and payload.display_name is not None:
        p.display_name = payload.display_name
    if "photo_url" in fields:
        p.photo_url = payload.photo_url
    await session.commit()
    await session.refresh(p)
    return p


async def user_status(session: AsyncSession, p: Participant, today: date) -> UserStatus:
    return UserStatus(
        registered=True,
        deposit_updated_today=await has_snapshot_on(session, p.id, today),
        telegram_id=int(p.telegram_id),
        display_name=p.display_name,
        market=p.market,
        instruments=list(p.instruments or []),
        initial_deposit=float(p.initial_deposit),
        currency=p.currency,
        avatar_url=p.photo_url,
        deposit_category=p.deposit_category,
    )


def _percent(new: Decimal, old: Decimal) -> Decimal:
    return ((new - old) / old * 100).quantize(_CENT, rounding=ROUND_HALF_UP)


async def deposit_history(session: AsyncSession, p: Participant) -> HistoryResponse:
    snaps = await snapshot_history(session, p.id)
    initial = Decimal(p.initial_deposit)

    entries: list[HistoryEntry] = []
    prev: Decimal | None = None
    for s in snaps:
        amount = Decimal(s.deposit_value)
        daily = _percent(amount, prev) if prev is not None and prev > 0 else None
        entries.append(HistoryEntry(
            date=s.deposit_date,
            date_label=s.deposit_date.strftime("%d.%m"),
            amount=float(amount),
            daily_change=float(daily) if daily is not None else None,
        ))
        prev = amount

    current = Decimal(snaps[-1].deposit_value) if snaps else initial
    pnl_percent = _percent(current, initial) if initial > 0 else Decimal(0)
    return HistoryResponse(
        days_participated=len(snaps),
        initial_deposit=float(initial),
        current_deposit=float(current),
        pnl_percent=float(pnl_percent),
        pnl_absolute=float((current - initial).quantize(_CENT)),
        currency=p.currency,
        entries=entries,
    )
