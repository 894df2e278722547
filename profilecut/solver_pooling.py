# profilecut/solver_pooling.py
# Profile pooling: identical-length pieces from different work orders share
# cutting patterns, so the saw is set up once per pattern instead of once per order.
#
# Steps:
#   1) bucket pieces by exact length (ascending length order)
#   2) first-fit inside each bucket -> single-length patterns
#   3) (allow_partial_stocks) dissolve each bucket's partial tail bar and
#      backfill its pieces into the slack of existing bars, then pack what is
#      left bar by bar. Both steps use the same CP-SAT bounded knapsack:
#      maximize used length within the bar's room and remaining cut count.
#
# Every bar records a work-order breakdown, so pooling never loses traceability.
# CP-SAT needs integers: lengths are scaled to 0.1 mm, piece consumption is
# rounded up and room rounded down, so accepted patterns always fit physically.

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ortools.sat.python import cp_model

from .logger import Logger, get_logger
from .solver_heuristic import check_fits, first_fit_bars, sort_decreasing
from .types import Cut, DemandUnit, OptimizationConstraints, make_cut

_EPS = 1e-9


@dataclass(frozen=True)
class PoolingParams:
    time_limit_s: float = 0.5   # per knapsack solve
    num_workers: int = 1
    scale: int = 10             # integer units per mm


def _bar_room(units: Sequence[DemandUnit], stock_length: float, constraints: OptimizationConstraints) -> float:
    used = sum(u.length + constraints.kerf_width for u in units)
    return constraints.usable_length(stock_length) - used


def fill_one_bar(
    pieces: Sequence[DemandUnit],
    room: float,
    slots: int,
    constraints: OptimizationConstraints,
    params: Optional[PoolingParams] = None,
) -> List[DemandUnit]:
    """
    Choose a subset of `pieces` that maximizes cut length inside `room` mm
    using at most `slots` cuts. Returns [] if nothing fits or the solver fails.
    """
    params = params or PoolingParams()
    if not pieces or slots <= 0:
        return []

    scale = params.scale
    kerf = constraints.kerf_width
    cap = int(math.floor(room * scale + _EPS))
    if cap <= 0:
        return []

    # Group by length: one integer count variable per distinct length
    groups: Dict[float, List[DemandUnit]] = {}
    for p in pieces:
        groups.setdefault(p.length, []).append(p)
    lengths = sorted(groups, reverse=True)
    need = {l: int(math.ceil((l + kerf) * scale - _EPS)) for l in lengths}
    lengths = [l for l in lengths if need[l] <= cap]
    if not lengths:
        return []

    m = cp_model.CpModel()
    take = {}
    for i, l in enumerate(lengths):
        ub = min(len(groups[l]), slots, cap // need[l])
        take[l] = m.NewIntVar(0, ub, f"take[{i}]")

    m.Add(sum(need[l] * take[l] for l in lengths) <= cap)
    m.Add(sum(take[l] for l in lengths) <= slots)
    m.Maximize(sum(int(round(l * scale)) * take[l] for l in lengths))

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = float(params.time_limit_s)
    solver.parameters.num_workers = max(1, int(params.num_workers))

    status = solver.Solve(m)
    if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
        return []

    chosen: List[DemandUnit] = []
    for l in lengths:
        k = int(solver.Value(take[l]))
        chosen.extend(groups[l][:k])
    return chosen


def pack_pooling(
    units: Sequence[DemandUnit],
    stock_length: float,
    constraints: OptimizationConstraints,
    params: Optional[PoolingParams] = None,
    logger: Optional[Logger] = None,
) -> List[Cut]:
    """
    Pool identical lengths across work orders into shared patterns.
    Returns cuts with work_order_breakdown and pool_key set.
    """
    params = params or PoolingParams()
    log = logger or get_logger()
    check_fits(units, stock_length, constraints)
    if not units:
        return []

    kerf = constraints.kerf_width
    max_cuts = constraints.max_cuts_per_stock
    usable = constraints.usable_length(stock_length)

    buckets: Dict[float, List[DemandUnit]] = {}
    for u in units:
        buckets.setdefault(u.length, []).append(u)

    bars: List[List[DemandUnit]] = []
    leftovers: List[DemandUnit] = []

    for length in sorted(buckets):
        bucket = sorted(buckets[length], key=lambda u: (u.work_order_id or "", u.item_index))
        bucket_bars = first_fit_bars(bucket, stock_length, constraints)
        if constraints.allow_partial_stocks and bucket_bars:
            tail = bucket_bars[-1]
            partial = (
                _bar_room(tail, stock_length, constraints) + _EPS >= length + kerf
                and len(tail) < max_cuts
            )
            if partial:
                leftovers.extend(tail)
                bucket_bars = bucket_bars[:-1]
        bars.extend(bucket_bars)

    if leftovers:
        log.debug(f"Pooling: backfilling {len(leftovers)} pieces from partial bars")
        shortest = min(u.length for u in leftovers)

        # Cross-length backfill into the slack of the pooled bars
        for bar in bars:
            if not leftovers:
                break
            room = _bar_room(bar, stock_length, constraints)
            slots = max_cuts - len(bar)
            if slots <= 0 or room + _EPS < shortest + kerf:
                continue
            chosen = fill_one_bar(leftovers, room, slots, constraints, params)
            if chosen:
                bar.extend(chosen)
                taken = {u.uid for u in chosen}
                leftovers = [u for u in leftovers if u.uid not in taken]
                if leftovers:
                    shortest = min(u.length for u in leftovers)

        # Remaining pieces: fill fresh bars one at a time
        while leftovers:
            chosen = fill_one_bar(leftovers, usable, max_cuts, constraints, params)
            if not chosen:
                log.warn("Pooling: knapsack returned no pattern, packing the rest with FFD")
                bars.extend(first_fit_bars(sort_decreasing(leftovers), stock_length, constraints))
                break
            bars.append(chosen)
            taken = {u.uid for u in chosen}
            leftovers = [u for u in leftovers if u.uid not in taken]

    profile = units[0].profile_type
    pool_key = f"{profile}|{stock_length:g}"
    return [
        make_cut(k, stock_length, bar, constraints, pool_key=pool_key, batch=True)
        for k, bar in enumerate(bars)
        if bar
    ]
