from __future__ import annotations

import pytest

from profilecut import orchestrator
from profilecut.errors import EmptyItemList, InvalidCuttingParameters, OptimizationTimeout
from profilecut.logger import Logger
from profilecut.orchestrator import Optimizer
from profilecut.solver_genetic import GeneticParams
from profilecut.types import Algorithm, MaterialStockLength, OptimizationItem

QUIET = Logger(enabled=False)

E2E_REQUEST = {
    "items": [
        {"profileType": "AL-40x40", "length": 1000, "quantity": 5},
        {"profileType": "AL-40x40", "length": 1500, "quantity": 3},
    ],
    "algorithm": "ffd",
    "constraints": {"kerfWidth": 5},
    "stockLengths": [6000],
}


class _RecordingSink:
    def __init__(self):
        self.events = []

    def record(self, event, payload):
        self.events.append((event, dict(payload)))


class _BrokenSink:
    def record(self, event, payload):
        raise RuntimeError("sink down")


def _optimizer(**kw):
    kw.setdefault("logger", QUIET)
    kw.setdefault("max_workers", 1)
    kw.setdefault("genetic", GeneticParams(population_size=8, generations=5, max_execution_time_s=20))
    return Optimizer(**kw)


def _mixed_items():
    return [
        OptimizationItem("AL-40x40", 2400, 4, work_order_id="WO-1", original_index=0),
        OptimizationItem("AL-20x20", 900, 7, work_order_id="WO-1", original_index=1),
        OptimizationItem("AL-40x40", 1100, 6, work_order_id="WO-2", original_index=2),
        OptimizationItem("AL-20x20", 450, 9, work_order_id="WO-2", original_index=3),
    ]


def test_handle_request_end_to_end():
    resp = _optimizer().handle_request(E2E_REQUEST)

    assert resp["success"] is True
    assert len(resp["cuttingPlan"]) == 2
    assert resp["cuttingPlan"][0]["plan"] == "3 x 1500 + 1 x 1000"
    assert resp["metrics"]["stockCount"] == 2
    assert resp["metrics"]["efficiency"] == pytest.approx(79.167, abs=1e-3)
    assert resp["executionTimeMs"] >= 0
    assert isinstance(resp["recommendations"], list)
    assert any("exceeds max_waste_percentage" in w for w in resp["warnings"])
    waste = resp["metrics"]["wasteDistribution"]
    assert (waste["large"], waste["excessive"]) == (1, 1)
    assert waste["lengths"] == {"minimal": 0.0, "small": 0.0, "medium": 0.0, "large": 476.0, "excessive": 1976.0}


def test_handle_request_reports_clamped_constraints():
    req = dict(E2E_REQUEST, constraints={"kerfWidth": 9})
    resp = _optimizer().handle_request(req)
    assert resp["success"] is True
    assert any("kerf_width" in w for w in resp["warnings"])


def test_handle_request_clamps_infinite_cut_limit():
    req = dict(E2E_REQUEST, constraints={"kerfWidth": 5, "maxCutsPerStock": float("inf")})
    resp = _optimizer().handle_request(req)
    assert resp["success"] is True
    assert any("max_cuts_per_stock=inf clamped to 100" in w for w in resp["warnings"])


@pytest.mark.parametrize(
    "patch, code",
    [
        ({"items": []}, "BUSINESS_003"),
        ({"items": [{"profileType": "AL", "length": 3}]}, "CLIENT_001"),
        ({"items": [{"profileType": "AL", "length": 7000}]}, "BUSINESS_002"),
        ({"algorithm": "simplex"}, "CLIENT_001"),
        ({"constraints": {"blade": 1}}, "CLIENT_001"),
        ({"constraints": [1, 2]}, "CLIENT_001"),
        ({"stockLengths": [100]}, "CLIENT_001"),
    ],
)
def test_handle_request_errors(patch, code):
    resp = _optimizer().handle_request(dict(E2E_REQUEST, **patch))
    assert resp["success"] is False
    assert resp["error"]["code"] == code
    assert "Traceback" not in resp["error"]["message"]


def test_groups_by_profile_and_renumbers():
    res = _optimizer().optimize("bfd", _mixed_items(), stock_lengths=[6000])

    assert sorted(g.profile_type for g in res.groups) == ["AL-20x20", "AL-40x40"]
    assert [c.stock_index for c in res.cuts] == list(range(len(res.cuts)))
    for c in res.cuts:
        assert {s.profile_type for s in c.segments} == {c.profile_type}
    assert res.unit_count == 26


def test_material_lengths_replace_stock_lengths_for_their_profile():
    materials = [MaterialStockLength("AL-20x20", 6500, cost_per_mm=0.03, availability=1)]
    res = _optimizer().optimize("ffd", _mixed_items(), stock_lengths=[6000], materials=materials)

    by_profile = {c.profile_type: {c2.stock_length for c2 in res.cuts if c2.profile_type == c.profile_type} for c in res.cuts}
    assert by_profile["AL-20x20"] == {6500.0}
    assert by_profile["AL-40x40"] == {6000.0}
    # more than one 6500 bar is needed, but only one is available
    assert any("only 1 are available" in w for w in res.warnings)


def test_best_candidate_stock_length_wins():
    items = [OptimizationItem("AL", 2900, 2, original_index=0)]
    res = _optimizer().optimize("ffd", items, stock_lengths=[6000, 3000])
    g = res.groups[0]
    assert g.candidates_tried == 2
    assert g.stock_length in (6000.0, 3000.0)


def test_default_stock_length_when_none_given():
    res = _optimizer().optimize("ffd", [OptimizationItem("AL", 3000, 2)])
    assert {c.stock_length for c in res.cuts} == {6100.0}


def test_every_algorithm_produces_valid_plans():
    items = _mixed_items()
    for algo in Algorithm:
        res = _optimizer().optimize(algo, items, stock_lengths=[6000])
        assert res.algorithm is algo
        assert sum(c.segment_count for c in res.cuts) == 26


def test_compare_ranks_and_isolates_failures(monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("packer exploded")

    monkeypatch.setattr(orchestrator, "pack_bfd", broken)
    cmp_ = _optimizer().compare(["ffd", "bfd", "pooling", "genetic"], _mixed_items(), stock_lengths=[6000])

    ok = [a for a in cmp_.attempts if a.success]
    failed = [a for a in cmp_.attempts if not a.success]
    assert [a.algorithm for a in failed] == [Algorithm.BFD]
    assert failed[0].error["code"] == "SYSTEM_001"
    assert len(ok) == 3
    scores = [a.result.metrics.quality_score for a in ok]
    assert scores == sorted(scores, reverse=True)
    assert cmp_.best is ok[0].result
    assert cmp_.pareto and set(cmp_.pareto) <= {a.algorithm for a in ok}


def test_empty_items_raise():
    with pytest.raises(EmptyItemList):
        _optimizer().optimize("ffd", [])


def test_no_candidate_fits():
    with pytest.raises(InvalidCuttingParameters):
        _optimizer().optimize("ffd", [OptimizationItem("AL", 6500)], stock_lengths=[6000, 6100])


def test_timeout():
    with pytest.raises(OptimizationTimeout) as ei:
        _optimizer(timeout_s=0.0).optimize("ffd", _mixed_items())
    assert ei.value.code == "SYSTEM_002"


def test_audit_events():
    sink = _RecordingSink()
    opt = _optimizer(audit=sink)
    opt.optimize("ffd", _mixed_items())
    with pytest.raises(EmptyItemList):
        opt.optimize("ffd", [])

    names = [e for e, _ in sink.events]
    assert names == ["optimization_started", "optimization_completed", "optimization_started", "optimization_failed"]
    assert sink.events[-1][1]["code"] == "BUSINESS_003"


def test_audit_sink_failures_are_swallowed():
    res = _optimizer(audit=_BrokenSink()).optimize("ffd", _mixed_items())
    assert res.metrics.stock_count > 0


def test_process_pool_matches_inline():
    items = _mixed_items()
    inline = _optimizer().optimize("ffd", items, stock_lengths=[6000, 6500])
    pooled = _optimizer(max_workers=2).optimize("ffd", items, stock_lengths=[6000, 6500])
    assert [c.pattern for c in pooled.cuts] == [c.pattern for c in inline.cuts]
    assert pooled.metrics.total_cost == pytest.approx(inline.metrics.total_cost)


def test_result_summary_properties():
    res = _optimizer().optimize("genetic", _mixed_items(), stock_lengths=[6000])
    assert res.stock_lengths_used == [6000.0]
    assert res.generations_run is not None and res.generations_run <= 5
    assert res.stop_reason in ("max_generations", "time_limit", "converged")

    ffd = _optimizer().optimize("ffd", _mixed_items(), stock_lengths=[6000])
    assert ffd.generations_run is None
    assert ffd.stop_reason is None


def test_generate_alternatives_respects_cap():
    req = dict(E2E_REQUEST, generateAlternatives=True, maxAlternatives=2)
    resp = _optimizer().handle_request(req)
    assert resp["success"] is True
    assert len(resp["alternatives"]) == 2
    assert all(row["algorithm"] != "ffd" for row in resp["alternatives"])


def test_compare_on_process_pool_matches_inline():
    items = _mixed_items()
    algos = ["ffd", "bfd", "ffd"]
    inline = _optimizer().compare(algos, items, stock_lengths=[6000, 6500])
    pooled = _optimizer(max_workers=4).compare(algos, items, stock_lengths=[6000, 6500])

    def summary(cmp_):
        return [(a.algorithm, [c.pattern for c in a.result.cuts]) for a in cmp_.attempts if a.result]

    assert summary(pooled) == summary(inline)
    assert pooled.pareto == inline.pareto
    assert [a.success for a in pooled.attempts] == [True, True]


def test_compare_timeout_fails_each_algorithm_instead_of_raising():
    cmp_ = _optimizer(timeout_s=0.0).compare(["ffd", "bfd"], _mixed_items(), stock_lengths=[6000])
    assert cmp_.best is None
    assert [a.error["code"] for a in cmp_.attempts] == ["SYSTEM_002", "SYSTEM_002"]


def test_compare_reports_request_errors_per_algorithm():
    cmp_ = _optimizer().compare(["ffd", "pooling"], [])
    assert [(a.algorithm, a.error["code"]) for a in cmp_.attempts] == [
        (Algorithm.FFD, "BUSINESS_003"),
        (Algorithm.POOLING, "BUSINESS_003"),
    ]


def test_mixed_lengths_pick_a_shorter_bar_for_the_tail():
    items = [OptimizationItem("AL", 5900, 1, original_index=0), OptimizationItem("AL", 2000, 1, original_index=1)]
    single = _optimizer().optimize("ffd", items, stock_lengths=[6000, 3000])
    mixed = _optimizer(mixed_lengths=True).optimize("ffd", items, stock_lengths=[6000, 3000])

    assert single.metrics.total_stock_length == 12000
    assert mixed.metrics.total_stock_length == 9000
    assert mixed.stock_lengths_used == [3000.0, 6000.0]
    assert mixed.groups[0].mixed
    assert mixed.metrics.quality_score > single.metrics.quality_score


@pytest.mark.parametrize("algo", ["ffd", "bfd"])
def test_mixed_lengths_never_score_below_the_best_single_length(algo):
    lengths = [6000, 3000, 4500]
    single = _optimizer().optimize(algo, _mixed_items(), stock_lengths=lengths)
    mixed = _optimizer(mixed_lengths=True).optimize(algo, _mixed_items(), stock_lengths=lengths)

    by_profile = {g.profile_type: g for g in single.groups}
    for g in mixed.groups:
        assert g.candidates_tried == len(lengths) + 1
        assert g.metrics.quality_score >= by_profile[g.profile_type].metrics.quality_score
    assert sum(c.segment_count for c in mixed.cuts) == 26


def test_mixed_lengths_respect_material_availability():
    materials = [
        MaterialStockLength("AL", 6000, availability=5),
        MaterialStockLength("AL", 3000, availability=0),
    ]
    items = [OptimizationItem("AL", 5900, 1, original_index=0), OptimizationItem("AL", 2000, 1, original_index=1)]
    res = _optimizer(mixed_lengths=True).optimize("ffd", items, materials=materials)
    assert any("bars of 3000 mm but only 0 are available" in w for w in res.warnings)
