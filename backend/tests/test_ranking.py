from __future__ import annotations
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import random
import pytest

from tournament.services.ranking import (
    RankingRow, compute_ranking, filter_category, order, paginate, pnl_percent, rank_of, resolve_current, score,
)

T0 = datetime(2026, 3, 6, 9, 0, tzinfo=timezone.utc)


def row(pid: int, initial="100000", latest=None, category=2, registered_offset_min=0) -> RankingRow:
    return RankingRow(
        participant_id=pid,
        external_id=1000 + pid,
        display_name=f"Trader {pid}",
        avatar_url=None,
        market="moex",
        instruments=("SBER",),
        initial_deposit=Decimal(initial),
        deposit_category=category,
        registered_at=T0 + timedelta(minutes=registered_offset_min),
        latest_value=Decimal(latest) if latest is not None else None,
    )


def test_pnl_percent_basic():
    assert pnl_percent(Decimal("112000"), Decimal("100000")) == Decimal("12.00")
    assert pnl_percent(Decimal("95000"), Decimal("100000")) == Decimal("-5.00")
    assert pnl_percent(Decimal("100000"), Decimal("100000")) == Decimal("0.00")


def test_pnl_percent_rounds_half_up():
    # ties round away from zero
    assert pnl_percent(Decimal("101005"), Decimal("100000")) == Decimal("1.01")
    assert pnl_percent(Decimal("100005"), Decimal("100000")) == Decimal("0.01")
    assert pnl_percent(Decimal("99995"), Decimal("100000")) == Decimal("-0.01")


def test_zero_baseline_yields_zero():
    assert pnl_percent(Decimal("500"), Decimal("0")) == Decimal("0.00")


def test_negative_baseline_is_rejected():
    with pytest.raises(AssertionError):
        pnl_percent(Decimal("500"), Decimal("-1"))


def test_current_falls_back_to_initial_without_snapshot():
    assert resolve_current(row(1)) == Decimal("100000")
    assert resolve_current(row(1, latest="120000")) == Decimal("120000")


def test_no_snapshot_means_zero_percent():
    (s,) = score([row(1)])
    assert s.pnl == Decimal("0.00")


def test_order_by_pnl_desc():
    rows = [row(1, latest="90000"), row(2, latest="130000"), row(3, latest="110000")]
    assert [s.row.participant_id for s in order(score(rows))] == [2, 3, 1]


def test_tie_broken_by_registration_time_then_id():
    rows = [
        row(5, latest="110000", registered_offset_min=10),
        row(4, latest="110000", registered_offset_min=0),
        row(3, latest="110000", registered_offset_min=10),
    ]
    assert [s.row.participant_id for s in order(score(rows))] == [4, 3, 5]


def test_positions_are_global_across_pages():
    rows = [row(i, latest=str(100000 + i * 1000)) for i in range(1, 26)]
    ordered = order(score(rows))
    page2 = paginate(ordered, page=2, limit=10)
    assert [e.position for e in page2] == list(range(11, 21))
    page3 = paginate(ordered, page=3, limit=10)
    assert [e.position for e in page3] == list(range(21, 26))
    assert paginate(ordered, page=4, limit=10) == []


def test_paginate_rejects_invalid_bounds():
    with pytest.raises(AssertionError):
        paginate([], page=0, limit=10)
    with pytest.raises(AssertionError):
        paginate([], page=1, limit=0)


def test_pages_concatenate_to_full_ordering():
    rows = [row(i, latest=str(100000 + (i * 7919) % 50000), registered_offset_min=i % 3) for i in range(1, 38)]
    full = compute_ranking(rows, None, page=1, limit=100).entries
    chunks = []
    for p in range(1, 5):
        chunks.extend(compute_ranking(rows, None, page=p, limit=10).entries)
    assert [e.external_id for e in chunks] == [e.external_id for e in full]
    assert [e.position for e in full] == list(range(1, 38))


def test_ranking_is_deterministic_regardless_of_input_order():
    rows = [row(i, latest=str(100000 + (i % 4) * 5000), registered_offset_min=i % 2) for i in range(1, 20)]
    expected = [e.external_id for e in compute_ranking(rows, None, 1, 50).entries]
    shuffled = rows[:]
    random.Random(7).shuffle(shuffled)
    assert [e.external_id for e in compute_ranking(shuffled, None, 1, 50).entries] == expected


def test_category_filter_partitions_participants():
    rows = [row(1, category=1), row(2, category=2), row(3, category=3), row(4, category=2), row(5, category=None)]
    assert [r.participant_id for r in filter_category(rows, 2)] == [2, 4]
    assert len(filter_category(rows, None)) == 5
    per_category = sum(compute_ranking(rows, c, 1, 10).total_count for c in (1, 2, 3))
    # uncategorised participants only appear under "all"
    assert per_category == 4
    assert compute_ranking(rows, None, 1, 10).total_count == 5


def test_total_count_ignores_pagination():
    rows = [row(i) for i in range(1, 8)]
    result = compute_ranking(rows, None, page=3, limit=3)
    assert result.total_count == 7
    assert len(result.entries) == 1


def test_rank_of_matches_position_in_full_ordering():
    rows = [row(i, latest=str(100000 + (i * 37) % 11 * 1000), registered_offset_min=i) for i in range(1, 30)]
    full = compute_ranking(rows, None, 1, 100).entries
    for e in full:
        me = rank_of(rows, None, e.external_id)
        assert me is not None
        assert me.position == e.position
        assert me.is_current_user is True


def test_rank_of_unknown_or_filtered_out():
    rows = [row(1, category=1), row(2, category=2)]
    assert rank_of(rows, None, 9999) is None
    assert rank_of(rows, 2, 1001) is None
    assert rank_of(rows, 1, 1001).position == 1


def test_entries_carry_display_fields():
    (e,) = compute_ranking([row(1, latest="112000")], None, 1, 10).entries
    assert e.pnl_percent == 12.0
    assert e.display_name == "Trader 1"
    assert e.instruments == ["SBER"]
    assert e.deposit_category == 2
    assert e.is_current_user is False
