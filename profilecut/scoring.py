# profilecut/scoring.py
# Scoring policies for cutting plans.
#
# The optimizer ranks plans through a ScoringPolicy (anything with
# `score(metrics) -> float`). The default is the fixed weighted sum used for
# the reported quality score; other policies can be passed to the optimizer
# without touching the packers.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Mapping, Protocol, Sequence, Tuple, TypeVar

from .config import DEFAULTS

if TYPE_CHECKING:
    from .metrics import PlanMetrics

T = TypeVar("T")


class ScoringPolicy(Protocol):
    def score(self, metrics: "PlanMetrics") -> float:
        ...


@dataclass(frozen=True)
class WeightedQualityScore:
    """
    Quality score in [0, 100]:
      efficiency       - piece length / stock length
      waste_reduction  - 1 - non-reclaimable waste / stock length
      complexity       - 1 - cutting complexity / 100
      setup_time       - 1 - (distinct patterns - 1) / bars
    """
    weights: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULTS.quality_score_weights))

    def components(self, m: "PlanMetrics") -> Dict[str, float]:
        if m.stock_count == 0 or m.total_stock_length <= 0:
            return {k: 0.0 for k in ("efficiency", "waste_reduction", "complexity", "setup_time")}
        return {
            "efficiency": m.efficiency / 100.0,
            "waste_reduction": 1.0 - m.non_reclaimable_waste / m.total_stock_length,
            "complexity": 1.0 - m.cutting_complexity / 100.0,
            "setup_time": 1.0 - (m.distinct_patterns - 1) / m.stock_count,
        }

    def score(self, metrics: "PlanMetrics") -> float:
        comps = self.components(metrics)
        total_w = 0.0
        acc = 0.0
        for name, w in self.weights.items():
            acc += w * comps.get(name, 0.0)
            total_w += w
        if total_w <= 0:
            return 0.0
        return max(0.0, min(100.0, 100.0 * acc / total_w))


@dataclass(frozen=True)
class WasteFirstScore:
    """Lexicographic-ish policy: fewest bars, then least waste."""

    def score(self, metrics: "PlanMetrics") -> float:
        if metrics.stock_count == 0:
            return 0.0
        return 100.0 - metrics.waste_percentage - metrics.stock_count * 1e-3


DEFAULT_SCORING = WeightedQualityScore()


def dominates(a: Sequence[float], b: Sequence[float]) -> bool:
    """a dominates b when it is no worse everywhere and strictly better somewhere (minimization)."""
    return all(x <= y for x, y in zip(a, b)) and any(x < y for x, y in zip(a, b))


def pareto_front(candidates: Sequence[T], objectives: Callable[[T], Tuple[float, ...]]) -> List[T]:
    """Non-dominated candidates (all objectives minimized), in input order."""
    vecs = [objectives(c) for c in candidates]
    out: List[T] = []
    for i, c in enumerate(candidates):
        if not any(dominates(vecs[j], vecs[i]) for j in range(len(candidates)) if j != i):
            out.append(c)
    return out
