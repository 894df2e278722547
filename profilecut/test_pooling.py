from __future__ import annotations

import pytest

from profilecut.logger import Logger
from profilecut.solver_pooling import fill_one_bar, pack_pooling
from profilecut.types import OptimizationConstraints, OptimizationItem, expand_items, quantities_by_item
from profilecut.validate import validate_cuts

QUIET = Logger(enabled=False)


def _items(*specs):
    """specs: (length, quantity, work_order_id)"""
    return [
        OptimizationItem("AL", float(l), quantity=q, work_order_id=wo, original_index=i)
        for i, (l, q, wo) in enumerate(specs)
    ]


def test_identical_lengths_share_bars_across_work_orders():
    items = _items((1000, 3, "WO-A"), (1000, 3, "WO-B"))
    cons = OptimizationConstraints(kerf_width=5.0)
    cuts = pack_pooling(expand_items(items), 6000, cons, logger=QUIET)

    assert len(cuts) == 2
    first = cuts[0]
    assert first.segment_count == 5
    assert first.is_mixed
    assert dict(first.work_order_breakdown) == {"WO-A": 3, "WO-B": 2}
    assert first.pool_key == "AL|6000"
    # consecutive pieces of one item are batched into a single segment
    assert [(s.item_index, s.quantity) for s in first.segments] == [(0, 3), (1, 2)]
    assert quantities_by_item(cuts) == {0: 3, 1: 3}


def test_partial_bar_is_backfilled_across_lengths():
    items = _items((2500, 2, "WO-A"), (1000, 1, "WO-B"))
    cons = OptimizationConstraints(kerf_width=0.0, safety_margin=0.0)
    cuts = pack_pooling(expand_items(items), 6000, cons, logger=QUIET)

    assert len(cuts) == 1
    assert cuts[0].pattern == (2500, 2500, 1000)
    assert cuts[0].remaining_length == pytest.approx(0.0)


def test_no_backfill_without_partial_stocks():
    items = _items((2500, 2, "WO-A"), (1000, 1, "WO-B"))
    cons = OptimizationConstraints(kerf_width=0.0, safety_margin=0.0, allow_partial_stocks=False)
    cuts = pack_pooling(expand_items(items), 6000, cons, logger=QUIET)

    assert sorted(c.pattern for c in cuts) == [(1000,), (2500, 2500)]


def test_pooled_plan_is_feasible():
    items = _items(
        (1200, 7, "WO-1"), (1200, 4, "WO-2"), (850, 9, "WO-1"), (430, 5, "WO-3"), (2999, 2, "WO-2")
    )
    cons = OptimizationConstraints()
    cuts = pack_pooling(expand_items(items), 6100, cons, logger=QUIET)

    assert not [i for i in validate_cuts(cuts, cons) if i.level == "ERROR"]
    assert quantities_by_item(cuts) == {it.original_index: it.quantity for it in items}


def test_fill_one_bar_maximizes_used_length():
    cons = OptimizationConstraints(kerf_width=0.0, safety_margin=0.0)
    pieces = expand_items(_items((3000, 1, None), (2000, 1, None), (1500, 1, None), (1000, 1, None)))

    chosen = fill_one_bar(pieces, 4500, 50, cons)
    assert sum(p.length for p in chosen) == pytest.approx(4500)

    one = fill_one_bar(pieces, 4500, 1, cons)
    assert [p.length for p in one] == [3000]


def test_fill_one_bar_counts_kerf():
    cons = OptimizationConstraints(kerf_width=5.0, safety_margin=0.0)
    pieces = expand_items(_items((1000, 3, None)))
    # room for two pieces plus kerf, not three
    assert len(fill_one_bar(pieces, 3010, 50, cons)) == 2
    assert fill_one_bar(pieces, 900, 50, cons) == []
