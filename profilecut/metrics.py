# profilecut/metrics.py
# Plan scorer: derived metrics for any list of cuts.
# - efficiency / waste percentage
# - waste distribution by category (+ reclaimable offcuts)
# - cost breakdown (costing.py) and quality score (scoring.py)
#
# Solver-agnostic and side-effect free: the genetic optimizer calls this for
# every individual, so it makes a single pass over the cuts.

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Sequence, Set, Tuple

from .costing import CostModel, compute_cost_breakdown
from .scoring import DEFAULT_SCORING, ScoringPolicy
from .types import Cut, OptimizationConstraints, WasteCategory, waste_category


@dataclass(frozen=True)
class WasteDistribution:
    minimal: int = 0
    small: int = 0
    medium: int = 0
    large: int = 0
    excessive: int = 0
    reclaimable: int = 0
    total_pieces: int = 0
    lengths: Dict[str, float] = field(default_factory=dict)  # category -> total remaining mm

    def count(self, category: WasteCategory) -> int:
        return getattr(self, category.value)


@dataclass(frozen=True)
class PlanMetrics:
    stock_count: int
    total_stock_length: float
    pieces_length: float
    kerf_loss: float
    safety_reserve: float
    total_waste: float
    reclaimable_waste: float
    non_reclaimable_waste: float
    waste_percentage: float
    efficiency: float  # percent, piece length / stock length
    segment_count: int
    distinct_patterns: int
    average_cuts_per_stock: float
    cutting_complexity: float
    setup_time: float
    cutting_time: float
    material_cost: float
    waste_cost: float
    labor_cost: float
    total_cost: float
    cost_per_meter: float
    waste_distribution: WasteDistribution
    quality_score: float = 0.0

    @property
    def efficiency_category(self) -> str:
        if self.efficiency >= 95:
            return "excellent"
        if self.efficiency >= 90:
            return "good"
        if self.efficiency >= 70:
            return "average"
        return "poor"


def compute_plan_metrics(
    cuts: Sequence[Cut],
    constraints: OptimizationConstraints,
    cost_model: Optional[CostModel] = None,
    policy: Optional[ScoringPolicy] = None,
) -> PlanMetrics:
    """
    Compute all metrics for a plan. Calling it twice on the same input returns
    equal results.
    """
    cost_model = cost_model or CostModel()
    policy = policy or DEFAULT_SCORING

    stock_total = 0.0
    pieces = 0.0
    kerf = 0.0
    safety = 0.0
    waste = 0.0
    reclaimable = 0.0
    segments = 0
    patterns: Set[Tuple[float, ...]] = set()
    counts = {c.value: 0 for c in WasteCategory}
    lengths = {c.value: 0.0 for c in WasteCategory}
    n_reclaimable = 0

    for c in cuts:
        stock_total += c.stock_length
        pieces += c.pieces_length
        kerf += c.kerf_loss
        if c.segment_count:
            safety += 2 * c.safety_margin
        rem = c.remaining_length
        waste += rem
        cat = waste_category(rem).value
        counts[cat] += 1
        lengths[cat] += rem
        if rem >= constraints.min_scrap_length:
            reclaimable += rem
            n_reclaimable += 1
        segments += c.segment_count
        patterns.add((c.stock_length,) + c.pattern)

    n = len(cuts)
    non_reclaimable = waste - reclaimable
    billable_waste = non_reclaimable if constraints.reclaim_waste_only else waste

    cost = compute_cost_breakdown(
        total_stock_length=stock_total,
        billable_waste=billable_waste,
        stock_count=n,
        segment_count=segments,
        model=cost_model,
    )

    dist = WasteDistribution(
        minimal=counts["minimal"],
        small=counts["small"],
        medium=counts["medium"],
        large=counts["large"],
        excessive=counts["excessive"],
        reclaimable=n_reclaimable,
        total_pieces=n,
        lengths=lengths,
    )

    base = PlanMetrics(
        stock_count=n,
        total_stock_length=stock_total,
        pieces_length=pieces,
        kerf_loss=kerf,
        safety_reserve=safety,
        total_waste=waste,
        reclaimable_waste=reclaimable,
        non_reclaimable_waste=non_reclaimable,
        waste_percentage=(waste / stock_total * 100.0) if stock_total > 0 else 0.0,
        efficiency=(pieces / stock_total * 100.0) if stock_total > 0 else 0.0,
        segment_count=segments,
        distinct_patterns=len(patterns),
        average_cuts_per_stock=(segments / n) if n else 0.0,
        cutting_complexity=min(100.0, segments / n * 10.0) if n else 0.0,
        setup_time=cost.setup_time,
        cutting_time=cost.cutting_time,
        material_cost=cost.material_cost,
        waste_cost=cost.waste_cost,
        labor_cost=cost.labor_cost,
        total_cost=cost.total_cost,
        cost_per_meter=cost.cost_per_meter,
        waste_distribution=dist,
    )
    return replace(base, quality_score=float(policy.score(base)))
