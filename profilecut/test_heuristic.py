from __future__ import annotations

import pytest

from profilecut.errors import InvalidCuttingParameters
from profilecut.solver_heuristic import (
    check_fits,
    pack_bfd,
    pack_ffd,
    pack_in_order,
    pack_mixed,
    pick_stock_length,
    sort_decreasing,
)
from profilecut.types import OptimizationConstraints, OptimizationItem, compact_demands, expand_items, quantities_by_item
from profilecut.validate import validate_cuts


def _units(*lengths, profile="AL"):
    items = [OptimizationItem(profile, float(l), original_index=i) for i, l in enumerate(lengths)]
    return expand_items(items)


def test_ffd_end_to_end_layout():
    items = [
        OptimizationItem("AL", 1000, quantity=5, original_index=0),
        OptimizationItem("AL", 1500, quantity=3, original_index=1),
    ]
    cons = OptimizationConstraints(kerf_width=5.0)
    cuts = pack_ffd(expand_items(items), 6000, cons)

    assert len(cuts) == 2
    assert cuts[0].pattern == (1500, 1500, 1500, 1000)
    assert cuts[1].pattern == (1000, 1000, 1000, 1000)
    assert cuts[0].used_length == pytest.approx(5500 + 4 * 5 + 2 * 2)
    assert cuts[0].remaining_length == pytest.approx(476)
    assert quantities_by_item(cuts) == {0: 5, 1: 3}


def test_each_piece_alone_with_zero_kerf():
    cons = OptimizationConstraints(kerf_width=0.0)
    for pack in (pack_ffd, pack_bfd):
        cuts = pack(_units(6000, 5000, 4000), 6100, cons)
        assert [c.pattern for c in cuts] == [(6000,), (5000,), (4000,)]


def test_ffd_and_bfd_pick_different_bars():
    cons = OptimizationConstraints(kerf_width=0.0, safety_margin=0.0)
    units = _units(700, 400, 380, 200)

    ffd = pack_ffd(units, 1000, cons)
    bfd = pack_bfd(units, 1000, cons)

    assert [c.pattern for c in ffd] == [(700, 200), (400, 380)]
    # BFD puts 200 into the tighter second bar (220 mm left vs 300 mm)
    assert [c.pattern for c in bfd] == [(700,), (400, 380, 200)]


def test_packers_are_deterministic():
    cons = OptimizationConstraints()
    units = _units(1200, 800, 800, 2500, 333, 1200, 90, 4100, 2500)
    for pack in (pack_ffd, pack_bfd):
        a = pack(units, 6100, cons)
        b = pack(list(units), 6100, cons)
        assert a == b


def test_piece_longer_than_stock_is_rejected():
    cons = OptimizationConstraints()
    with pytest.raises(InvalidCuttingParameters) as ei:
        pack_ffd(_units(1000, 6100), 6100, cons)
    assert ei.value.code == "BUSINESS_002"
    assert ei.value.details["itemIndex"] == 1


def test_stock_without_usable_length():
    cons = OptimizationConstraints(safety_margin=40.0)
    with pytest.raises(InvalidCuttingParameters):
        check_fits(_units(20), 80, cons)


def test_max_cuts_per_stock_opens_new_bars():
    cons = OptimizationConstraints(kerf_width=0.0, safety_margin=0.0, max_cuts_per_stock=2)
    cuts = pack_ffd(_units(100, 100, 100, 100, 100), 1000, cons)
    assert [c.segment_count for c in cuts] == [2, 2, 1]
    assert not [i for i in validate_cuts(cuts, cons) if i.level == "ERROR"]


def test_segment_positions_follow_kerf_and_safety():
    cons = OptimizationConstraints(kerf_width=4.0, safety_margin=10.0)
    cut = pack_ffd(_units(1000, 500), 6000, cons)[0]
    assert [s.position for s in cut.segments] == [10.0, 1014.0]
    assert cut.segments[-1].end_position == 1514.0


def test_pack_in_order_keeps_gene_order():
    cons = OptimizationConstraints(kerf_width=0.0, safety_margin=0.0)
    units = _units(300, 900, 600)
    cuts = pack_in_order(units, 1000, cons)
    # 300 then 900 does not fit -> second bar; 600 goes back into the first
    assert [[s.length for s in c.segments] for c in cuts] == [[300, 600], [900]]


def test_sort_decreasing_breaks_ties_by_item_index():
    units = _units(500, 800, 500)
    assert [u.item_index for u in sort_decreasing(units)] == [1, 0, 2]


def test_compact_demands_longest_first():
    items = [
        OptimizationItem("AL", 1000, quantity=5),
        OptimizationItem("AL", 1500, quantity=3),
        OptimizationItem("AL", 1000, quantity=2),
    ]
    assert compact_demands(items) == [(1500.0, 3), (1000.0, 7)]


def test_pick_stock_length_prefers_least_offcut_per_piece():
    cons = OptimizationConstraints()
    # 918 mm: six pieces on 6000 leave less per piece than three on 3400
    assert pick_stock_length(918, [3400, 6000], cons) == 6000.0
    assert pick_stock_length(2000, [6000, 3000], cons) == 3000.0
    assert pick_stock_length(7000, [6000, 3000], cons) is None


def test_pack_mixed_opens_each_bar_on_its_own_length():
    cons = OptimizationConstraints()
    cuts = pack_mixed(_units(5900, 2000), [6000, 3000], cons)
    assert [c.stock_length for c in cuts] == [6000.0, 3000.0]
    assert not [i for i in validate_cuts(cuts, cons) if i.level == "ERROR"]


def test_pack_mixed_shrinks_a_short_tail_bar():
    cuts = pack_mixed(_units(*([1000] * 6)), [6000, 2000], OptimizationConstraints())
    assert [c.stock_length for c in cuts] == [6000.0, 2000.0]
    assert [c.segment_count for c in cuts] == [5, 1]


def test_pack_mixed_rejects_pieces_longer_than_every_stock():
    with pytest.raises(InvalidCuttingParameters):
        pack_mixed(_units(6500), [6000, 3000], OptimizationConstraints())
