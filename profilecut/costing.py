# profilecut/costing.py
# Cost utilities for a cutting plan:
# - material cost from total stock length consumed
# - waste cost (waste is billed above material rate, see waste_cost_multiplier)
# - labor cost from setups per bar + cutting minutes per piece
#
# Notes:
# - rates are "per mm"; if your supplier prices per meter, pass price_per_meter / 1000.
# - a MaterialStockLength catalog entry can override the per-mm rate for its profile.

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .config import DEFAULTS
from .types import MaterialStockLength


@dataclass(frozen=True)
class CostModel:
    cost_per_mm: float = DEFAULTS.cost_per_mm
    setup_cost_per_stock: float = DEFAULTS.setup_cost_per_stock
    labor_cost_per_minute: float = DEFAULTS.labor_cost_per_minute
    waste_cost_multiplier: float = DEFAULTS.waste_cost_multiplier

    # Time estimates (minutes)
    setup_minutes_per_stock: float = DEFAULTS.setup_minutes_per_stock
    cutting_minutes_per_segment: float = DEFAULTS.cutting_minutes_per_segment

    def for_material(self, material: Optional[MaterialStockLength]) -> "CostModel":
        """Use the catalog price of a stock length when it has one."""
        if material is None:
            return self
        if material.cost_per_mm is not None:
            return replace(self, cost_per_mm=float(material.cost_per_mm))
        if material.cost_per_stock is not None and material.stock_length > 0:
            return replace(self, cost_per_mm=float(material.cost_per_stock) / material.stock_length)
        return self


@dataclass(frozen=True)
class CostBreakdown:
    material_cost: float
    waste_cost: float
    labor_cost: float
    setup_time: float    # minutes
    cutting_time: float  # minutes
    total_cost: float
    cost_per_meter: float


def compute_cost_breakdown(
    *,
    total_stock_length: float,
    billable_waste: float,
    stock_count: int,
    segment_count: int,
    model: CostModel,
) -> CostBreakdown:
    """
    materialCost = total stock length x cost/mm
    wasteCost    = billable waste x cost/mm x waste multiplier
    laborCost    = setups x setup cost + cutting minutes x labor cost/min
    """
    material = total_stock_length * model.cost_per_mm
    waste = billable_waste * model.cost_per_mm * model.waste_cost_multiplier

    setup_time = stock_count * model.setup_minutes_per_stock
    cutting_time = segment_count * model.cutting_minutes_per_segment
    labor = stock_count * model.setup_cost_per_stock + cutting_time * model.labor_cost_per_minute

    total = material + waste + labor
    per_meter = total / (total_stock_length / 1000.0) if total_stock_length > 0 else 0.0

    return CostBreakdown(
        material_cost=material,
        waste_cost=waste,
        labor_cost=labor,
        setup_time=setup_time,
        cutting_time=cutting_time,
        total_cost=total,
        cost_per_meter=per_meter,
    )
