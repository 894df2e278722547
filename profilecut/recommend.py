# profilecut/recommend.py
# Heuristic advice attached to a result.
# Each rule looks at the plan metrics and emits at most one recommendation.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .config import DEFAULTS, Defaults
from .metrics import PlanMetrics
from .types import Algorithm, OptimizationConstraints


@dataclass(frozen=True)
class OptimizationRecommendation:
    type: str        # "efficiency" | "cost" | "quality" | "setup" | "waste" | "algorithm"
    severity: str    # "info" | "warning" | "critical"
    message: str
    impact: str
    suggestion: str
    potential_savings: float = 0.0  # currency units, rough estimate
    implementation_effort: str = "low"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "impact": self.impact,
            "suggestion": self.suggestion,
            "potentialSavings": round(self.potential_savings, 2),
            "implementationEffort": self.implementation_effort,
        }


def build_recommendations(
    metrics: PlanMetrics,
    algorithm: Algorithm,
    unit_count: int,
    constraints: OptimizationConstraints,
    defaults: Defaults = DEFAULTS,
) -> List[OptimizationRecommendation]:
    recs: List[OptimizationRecommendation] = []
    if metrics.stock_count == 0:
        return recs

    if algorithm in (Algorithm.FFD, Algorithm.BFD) and unit_count > defaults.genetic_suggestion_threshold:
        recs.append(
            OptimizationRecommendation(
                type="algorithm",
                severity="info",
                message=f"{unit_count} pieces were packed with {algorithm.value.upper()}",
                impact="Large orders often leave room for a better packing order",
                suggestion="Try the genetic optimizer on this order",
                implementation_effort="low",
            )
        )

    if metrics.waste_percentage > constraints.max_waste_percentage:
        excess = metrics.waste_percentage - constraints.max_waste_percentage
        recs.append(
            OptimizationRecommendation(
                type="waste",
                severity="warning",
                message=(
                    f"Waste {metrics.waste_percentage:.1f}% exceeds the target "
                    f"{constraints.max_waste_percentage:.1f}%"
                ),
                impact=f"{excess:.1f} percentage points above target",
                suggestion="Compare other stock lengths or combine this order with others of the same profile",
                potential_savings=metrics.waste_cost * excess / max(metrics.waste_percentage, 1e-9),
                implementation_effort="medium",
            )
        )

    dist = metrics.waste_distribution
    if dist.excessive and dist.excessive * 4 >= metrics.stock_count:
        recs.append(
            OptimizationRecommendation(
                type="waste",
                severity="warning",
                message=f"{dist.excessive} of {metrics.stock_count} bars leave more than 500 mm",
                impact="Long offcuts tie up material",
                suggestion="Use a shorter stock length for these bars or keep the offcuts as remnant stock",
                potential_savings=dist.lengths.get("excessive", 0.0) * 0.5 * (
                    metrics.material_cost / metrics.total_stock_length if metrics.total_stock_length else 0.0
                ),
                implementation_effort="medium",
            )
        )

    if metrics.efficiency < 70:
        recs.append(
            OptimizationRecommendation(
                type="efficiency",
                severity="critical" if metrics.efficiency < 50 else "warning",
                message=f"Material efficiency is low ({metrics.efficiency:.1f}%)",
                impact="More than 30% of the bought length does not end up in pieces",
                suggestion="Check that the stock length suits the piece lengths",
                implementation_effort="medium",
            )
        )

    if metrics.stock_count >= 4 and metrics.distinct_patterns * 2 > metrics.stock_count and algorithm != Algorithm.POOLING:
        recs.append(
            OptimizationRecommendation(
                type="setup",
                severity="info",
                message=f"{metrics.distinct_patterns} distinct cutting patterns over {metrics.stock_count} bars",
                impact="Every new pattern means another saw setup",
                suggestion="Use pooling to share patterns across work orders",
                potential_savings=(metrics.distinct_patterns - metrics.stock_count / 2) * defaults.setup_cost_per_stock,
                implementation_effort="low",
            )
        )

    if dist.reclaimable:
        recs.append(
            OptimizationRecommendation(
                type="waste",
                severity="info",
                message=f"{dist.reclaimable} offcuts are at least {constraints.min_scrap_length:g} mm long",
                impact=f"{metrics.reclaimable_waste:.0f} mm can go back to stock",
                suggestion="Label and store reclaimable offcuts for later orders",
                implementation_effort="low",
            )
        )

    if metrics.average_cuts_per_stock > constraints.max_cuts_per_stock * 0.8:
        recs.append(
            OptimizationRecommendation(
                type="quality",
                severity="info",
                message=f"{metrics.average_cuts_per_stock:.1f} cuts per bar on average",
                impact="Close to the per-bar cut limit; saw time dominates",
                suggestion="Check blade wear and cutting time estimates for this job",
                implementation_effort="low",
            )
        )

    return recs
