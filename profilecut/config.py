# profilecut/config.py
# Centralized defaults and configuration helpers.
# Keeps "magic numbers" (kerf, stock limits, cost rates, weights) in one place.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from .types import OptimizationConstraints


@dataclass(frozen=True)
class Defaults:
    # Stock bars (mm)
    default_stock_length: float = 6100.0
    min_stock_length: float = 500.0
    max_stock_length: float = 20000.0

    # Demand limits
    min_cut_length: float = 10.0
    max_cut_length: float = 20000.0
    min_quantity: int = 1
    max_quantity: int = 1000

    # Default operational policy for a run
    default_constraints: OptimizationConstraints = field(default_factory=OptimizationConstraints)

    # Valid ranges used by the constraint resolver (values outside are clamped)
    kerf_range: Tuple[float, float] = (0.1, 5.0)
    safety_margin_range: Tuple[float, float] = (0.0, 50.0)
    min_scrap_range: Tuple[float, float] = (0.0, 1000.0)
    max_cuts_range: Tuple[int, int] = (1, 100)
    max_waste_pct_range: Tuple[float, float] = (0.0, 100.0)

    # Cost parameters (currency units)
    cost_per_mm: float = 0.05
    setup_cost_per_stock: float = 5.0
    labor_cost_per_minute: float = 0.5
    waste_cost_multiplier: float = 1.2

    # Time estimates (minutes)
    setup_minutes_per_stock: float = 5.0
    cutting_minutes_per_segment: float = 2.0

    # Weighted quality score
    quality_score_weights: Dict[str, float] = field(
        default_factory=lambda: {
            "efficiency": 0.35,
            "waste_reduction": 0.25,
            "complexity": 0.20,
            "setup_time": 0.20,
        }
    )

    # Adaptive GA sizing: (item count upper bound, population, generations)
    ga_size_table: Tuple[Tuple[int, int, int], ...] = (
        (10, 10, 20),
        (30, 20, 50),
        (100, 30, 75),
    )
    ga_size_large: Tuple[int, int] = (50, 100)
    ga_mutation_rate: float = 0.15
    ga_crossover_rate: float = 0.8
    ga_max_execution_time_s: float = 60.0

    # Above this many unit demands a heuristic result suggests trying genetic
    genetic_suggestion_threshold: int = 50


DEFAULTS = Defaults()


def clamp_int(v: float | int, lo: int, hi: int) -> int:
    """Clamp a numeric value to an int range (infinities land on the bounds)."""
    x = float(v)
    if x < lo:
        return lo
    if x > hi:
        return hi
    return int(round(x))


def clamp_float(v: float | int, lo: float, hi: float) -> float:
    """Clamp a numeric value to a float range."""
    x = float(v)
    if x < lo:
        return lo
    if x > hi:
        return hi
    return x


def adaptive_ga_size(item_count: int, defaults: Defaults = DEFAULTS) -> Tuple[int, int]:
    """
    Population size and generation count for a given number of unit demands:
      <10 -> 10/20, <30 -> 20/50, <100 -> 30/75, otherwise 50/100
    """
    for upper, pop, gens in defaults.ga_size_table:
        if item_count < upper:
            return pop, gens
    return defaults.ga_size_large


def parse_stock_lengths(text: str) -> Tuple[float, ...]:
    """
    Parse '6000,6500,7000' -> (6000.0, 6500.0, 7000.0)
    """
    vals = [v.strip() for v in str(text).split(",") if v.strip() != ""]
    if not vals:
        raise ValueError("stock lengths must be like '6000' or '6000,6500'")
    return tuple(float(v) for v in vals)
