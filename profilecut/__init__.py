# profilecut/__init__.py
"""
Profile cutting optimizer (1D stock cutting for aluminum profiles).

Current state:
- Heuristic packers: First-Fit-Decreasing, Best-Fit-Decreasing
- Pooling packer: identical lengths share patterns across work orders,
  cross-length backfill via a CP-SAT knapsack
- Genetic optimizer over packing orders (seeded, deadline-bounded)
- Plan scorer: efficiency, waste distribution, cost breakdown, quality score
- Orchestrator: profile grouping, candidate stock lengths, process-pool
  attempts, comparison mode, JSON request/response boundary

Plotting (matplotlib) lives in profilecut.plotting and is imported on demand.
"""

from .types import (
    Priority,
    WasteCategory,
    Algorithm,
    OptimizationItem,
    DemandUnit,
    expand_items,
    OptimizationConstraints,
    MaterialStockLength,
    CuttingSegment,
    Cut,
)

from .errors import (
    OptimizerError,
    ValidationError,
    OptimizationFailed,
    InvalidCuttingParameters,
    EmptyItemList,
    InternalFault,
    OptimizationTimeout,
)

from .config import DEFAULTS, Defaults

from .normalize import normalize_items
from .constraints import resolve_constraints

from .solver_heuristic import pack_ffd, pack_bfd, pack_in_order
from .solver_pooling import PoolingParams, pack_pooling
from .solver_genetic import GeneticParams, GeneticOutcome, optimize_genetic

from .costing import CostModel
from .metrics import PlanMetrics, WasteDistribution, compute_plan_metrics
from .scoring import ScoringPolicy, WeightedQualityScore, pareto_front

from .orchestrator import (
    Optimizer,
    OptimizationResult,
    AlgorithmAttempt,
    OptimizationComparison,
    LoggingAuditSink,
)

__all__ = [
    # types
    "Priority",
    "WasteCategory",
    "Algorithm",
    "OptimizationItem",
    "DemandUnit",
    "expand_items",
    "OptimizationConstraints",
    "MaterialStockLength",
    "CuttingSegment",
    "Cut",
    # errors
    "OptimizerError",
    "ValidationError",
    "OptimizationFailed",
    "InvalidCuttingParameters",
    "EmptyItemList",
    "InternalFault",
    "OptimizationTimeout",
    # config
    "DEFAULTS",
    "Defaults",
    # input
    "normalize_items",
    "resolve_constraints",
    # packers
    "pack_ffd",
    "pack_bfd",
    "pack_in_order",
    "PoolingParams",
    "pack_pooling",
    "GeneticParams",
    "GeneticOutcome",
    "optimize_genetic",
    # scoring
    "CostModel",
    "PlanMetrics",
    "WasteDistribution",
    "compute_plan_metrics",
    "ScoringPolicy",
    "WeightedQualityScore",
    "pareto_front",
    # orchestration
    "Optimizer",
    "OptimizationResult",
    "AlgorithmAttempt",
    "OptimizationComparison",
    "LoggingAuditSink",
]
