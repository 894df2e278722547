# profilecut/utils.py
# Small utilities used across the project:
# - timing context manager
# - JSON-friendly export of results (camelCase, the shape the REST layer returns)
#
# Keeps dependencies minimal (stdlib only).

from __future__ import annotations

import json
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterator, List

from .metrics import PlanMetrics
from .types import Cut

if TYPE_CHECKING:
    from .orchestrator import OptimizationComparison, OptimizationResult


@contextmanager
def timer(label: str = "timer") -> Iterator[Dict[str, float]]:
    """
    Usage:
      with timer("optimize") as t:
          ...
      print(t["seconds"])
    """
    t0 = time.perf_counter()
    payload: Dict[str, float] = {}
    try:
        yield payload
    finally:
        payload["seconds"] = time.perf_counter() - t0


def _r(x: float, nd: int = 3) -> float:
    return round(float(x), nd)


def cut_to_dict(c: Cut) -> Dict[str, Any]:
    return {
        "stockIndex": c.stock_index,
        "stockLength": c.stock_length,
        "profileType": c.profile_type,
        "plan": c.plan_label,
        "segmentCount": c.segment_count,
        "usedLength": _r(c.used_length),
        "remainingLength": _r(c.remaining_length),
        "kerfLoss": _r(c.kerf_loss),
        "wasteCategory": c.waste_category.value,
        "isReclaimable": c.is_reclaimable,
        "poolKey": c.pool_key,
        "workOrderBreakdown": [
            {"workOrderId": wo or None, "count": n} for wo, n in c.work_order_breakdown
        ],
        "segments": [
            {
                "sequence": s.sequence,
                "length": s.length,
                "quantity": s.quantity,
                "position": _r(s.position),
                "endPosition": _r(s.end_position),
                "itemIndex": s.item_index,
                "profileType": s.profile_type,
                "workOrderId": s.work_order_id,
            }
            for s in c.segments
        ],
    }


def metrics_to_dict(m: PlanMetrics) -> Dict[str, Any]:
    d = m.waste_distribution
    return {
        "stockCount": m.stock_count,
        "totalStockLength": _r(m.total_stock_length),
        "totalPiecesLength": _r(m.pieces_length),
        "totalKerfLoss": _r(m.kerf_loss),
        "totalWaste": _r(m.total_waste),
        "wastePercentage": _r(m.waste_percentage),
        "efficiency": _r(m.efficiency),
        "efficiencyCategory": m.efficiency_category,
        "reclaimableWaste": _r(m.reclaimable_waste),
        "segmentCount": m.segment_count,
        "distinctPatterns": m.distinct_patterns,
        "averageCutsPerStock": _r(m.average_cuts_per_stock),
        "cuttingComplexity": _r(m.cutting_complexity),
        "setupTime": _r(m.setup_time),
        "cuttingTime": _r(m.cutting_time),
        "qualityScore": _r(m.quality_score),
        "cost": {
            "materialCost": _r(m.material_cost, 2),
            "wasteCost": _r(m.waste_cost, 2),
            "laborCost": _r(m.labor_cost, 2),
            "totalCost": _r(m.total_cost, 2),
            "costPerMeter": _r(m.cost_per_meter, 2),
        },
        "wasteDistribution": {
            "minimal": d.minimal,
            "small": d.small,
            "medium": d.medium,
            "large": d.large,
            "excessive": d.excessive,
            "reclaimable": d.reclaimable,
            "totalPieces": d.total_pieces,
            "lengths": {k: _r(v) for k, v in d.lengths.items()},
        },
    }


def result_to_dict(res: "OptimizationResult") -> Dict[str, Any]:
    """
    Convert an OptimizationResult to a JSON-friendly dict.
    """
    return {
        "algorithm": res.algorithm.value,
        "workOrderId": res.work_order_id,
        "cuttingPlan": [cut_to_dict(c) for c in res.cuts],
        "metrics": metrics_to_dict(res.metrics),
        "groups": [
            {
                "profileType": g.profile_type,
                "stockLength": g.stock_length,
                "stockCount": len(g.cuts),
                "efficiency": _r(g.metrics.efficiency),
                "candidatesTried": g.candidates_tried,
                "generationsRun": g.generations_run,
                "stopReason": g.stop_reason,
                "mixedLengths": g.mixed,
            }
            for g in res.groups
        ],
        "recommendations": [r.to_dict() for r in res.recommendations],
        "warnings": list(res.warnings),
        "stockLengthsUsed": res.stock_lengths_used,
        "executionTimeMs": _r(res.execution_time_ms),
    }


def comparison_to_dicts(cmp_: "OptimizationComparison") -> List[Dict[str, Any]]:
    """One summary row per attempted algorithm, best first."""
    rows: List[Dict[str, Any]] = []
    pareto = {a.value for a in cmp_.pareto}
    for rank, a in enumerate(cmp_.attempts, start=1):
        row: Dict[str, Any] = {
            "algorithm": a.algorithm.value,
            "success": a.success,
            "executionTimeMs": _r(a.execution_time_ms),
        }
        if a.success and a.result is not None:
            m = a.result.metrics
            row.update(
                {
                    "rank": rank,
                    "paretoOptimal": a.algorithm.value in pareto,
                    "stockCount": m.stock_count,
                    "efficiency": _r(m.efficiency),
                    "totalWaste": _r(m.total_waste),
                    "totalCost": _r(m.total_cost, 2),
                    "qualityScore": _r(m.quality_score),
                }
            )
        else:
            row["error"] = a.error
        rows.append(row)
    return rows


def save_result_json(res: "OptimizationResult", path: str | Path, *, indent: int = 2) -> None:
    """Save a result (plan + metrics + recommendations) into JSON for integration/debugging."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(result_to_dict(res), f, ensure_ascii=False, indent=indent)
