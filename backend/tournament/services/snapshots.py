from __future__ import annotations
from datetime import date
from decimal import Decimal
from sqlalchemy import select, func, and_, exists
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from tournament.models.deposit import DepositSnapshot
from tournament.models.participant import Participant
from tournament.services.ranking import RankingRow


def _insert_for(session: AsyncSession):
    """Dialect-native INSERT supporting ON CONFLICT (PostgreSQL in prod, SQLite in tests)."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"upsert not supported on dialect {dialect!r}")


async def upsert_snapshot(session: AsyncSession, participant_id: int, deposit_date: date, value: Decimal) -> None:
    """
    Atomic insert-or-overwrite for (participant, date).
    Concurrent writers serialize on the unique constraint; the last commit wins.
    """
    insert = _insert_for(session)
    stmt = insert(DepositSnapshot).values(
        user_id=participant_id,
        deposit_date=deposit_date,
        deposit_value=value,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[DepositSnapshot.user_id, DepositSnapshot.deposit_date],
        set_={"deposit_value": stmt.excluded.deposit_value, "updated_at": func.now()},
    )
    await session.execute(stmt)


async def insert_snapshot_if_absent(session: AsyncSession, participant_id: int, deposit_date: date, value: Decimal) -> None:
    insert = _insert_for(session)
    stmt = insert(DepositSnapshot).values(
        user_id=participant_id,
        deposit_date=deposit_date,
        deposit_value=value,
    ).on_conflict_do_nothing(index_elements=[DepositSnapshot.user_id, DepositSnapshot.deposit_date])
    await session.execute(stmt)


async def latest_at_or_before(session: AsyncSession, participant_id: int, d: date) -> Decimal | None:
    return await session.scalar(
        select(DepositSnapshot.deposit_value)
        .where(DepositSnapshot.user_id == participant_id, DepositSnapshot.deposit_date <= d)
        .order_by(DepositSnapshot.deposit_date.desc())
        .limit(1)
    )


async def has_snapshot_on(session: AsyncSession, participant_id: int, d: date) -> bool:
    found = await session.scalar(
        select(exists().where(DepositSnapshot.user_id == participant_id, DepositSnapshot.deposit_date == d))
    )
    return bool(found)


async def snapshot_history(session: AsyncSession, participant_id: int) -> list[DepositSnapshot]:
    return list((await session.execute(
        select(DepositSnapshot)
        .where(DepositSnapshot.user_id == participant_id)
        .order_by(DepositSnapshot.deposit_date.asc())
        .execution_options(populate_existing=True)
    )).scalars().all())


async def load_ranking_rows(session: AsyncSession, category: int | None, as_of: date) -> list[RankingRow]:
    """
    Every participant passing the category filter with its latest snapshot value
    at or before `as_of` (None when nothing was reported yet).
    """
    latest = (
        select(DepositSnapshot.user_id, func.max(DepositSnapshot.deposit_date).label("latest_date"))
        .where(DepositSnapshot.deposit_date <= as_of)
        .group_by(DepositSnapshot.user_id)
        .subquery()
    )
    q = (
        select(Participant, DepositSnapshot.deposit_value)
        .outerjoin(latest, latest.c.user_id == Participant.id)
        .outerjoin(
            DepositSnapshot,
            and_(DepositSnapshot.user_id == latest.c.user_id, DepositSnapshot.deposit_date == latest.c.latest_date),
        )
    )
    if category is not None:
        q = q.where(Participant.deposit_category == category)

    rows = (await session.execute(q)).all()
    return [
        RankingRow(
            participant_id=p.id,
            external_id=int(p.telegram_id),
            display_name=p.display_name,
            avatar_url=p.photo_url,
            market=p.market,
            instruments=tuple(p.instruments or ()),
            initial_deposit=Decimal(p.initial_deposit),
            deposit_category=p.deposit_category,
            registered_at=p.registered_at,
            latest_value=Decimal(value) if value is not None else None,
        )
        for (p, value) in rows
    ]
