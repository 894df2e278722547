# profilecut/orchestrator.py
# High-level runner that ties together:
# - item normalization + constraint resolution (request boundary)
# - grouping by profile type and candidate stock lengths
# - packer dispatch (ffd / bfd / pooling / genetic), concurrently on a process pool
# - scoring, validation, recommendations
# - audit events (fire-and-forget)
#
# Example:
#   from profilecut import Optimizer, OptimizationItem
#   res = Optimizer().optimize("bfd", [OptimizationItem("AL-40x40", 1500, 3)], stock_lengths=[6000])
#   print(res.metrics.efficiency, [c.plan_label for c in res.cuts])

from __future__ import annotations

import os
import time
from concurrent.futures import Future, ProcessPoolExecutor, wait
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

from .config import DEFAULTS, Defaults
from .constraints import resolve_constraints
from .costing import CostModel
from .errors import (
    EmptyItemList,
    InvalidCuttingParameters,
    InternalFault,
    OptimizationTimeout,
    OptimizerError,
    ValidationError,
    as_error_dict,
)
from .logger import Logger, get_logger
from .metrics import PlanMetrics, compute_plan_metrics
from .normalize import normalize_items
from .recommend import OptimizationRecommendation, build_recommendations
from .scoring import DEFAULT_SCORING, ScoringPolicy, pareto_front
from .solver_genetic import GeneticParams, optimize_genetic
from .solver_heuristic import pack_bfd, pack_ffd, pack_mixed
from .solver_pooling import PoolingParams, pack_pooling
from .types import (
    Algorithm,
    Cut,
    DemandUnit,
    MaterialStockLength,
    OptimizationConstraints,
    OptimizationItem,
    compact_demands,
    expand_items,
    renumber_cuts,
)
from .validate import raise_on_errors, validate_plan


# ----------------------------
# Audit
# ----------------------------

class AuditSink(Protocol):
    def record(self, event: str, payload: Dict[str, Any]) -> None:
        ...


@dataclass
class LoggingAuditSink:
    """Writes audit events through the optimizer logger."""
    logger: Optional[Logger] = None

    def record(self, event: str, payload: Dict[str, Any]) -> None:
        log = self.logger or get_logger()
        fields = " ".join(f"{k}={v}" for k, v in payload.items())
        log.info(f"audit {event} {fields}".rstrip())


# ----------------------------
# Results
# ----------------------------

@dataclass(frozen=True)
class GroupPlan:
    """Winning plan for one profile type."""
    profile_type: str
    stock_length: float
    cuts: List[Cut]
    metrics: PlanMetrics
    candidates_tried: int
    generations_run: Optional[int] = None
    stop_reason: Optional[str] = None
    mixed: bool = False                      # bars use several stock lengths (stock_length is the longest)


@dataclass(frozen=True)
class OptimizationResult:
    algorithm: Algorithm
    cuts: List[Cut]
    metrics: PlanMetrics
    constraints: OptimizationConstraints
    groups: List[GroupPlan]
    recommendations: List[OptimizationRecommendation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    execution_time_ms: float = 0.0
    work_order_id: Optional[str] = None
    unit_count: int = 0

    @property
    def stock_lengths_used(self) -> List[float]:
        return sorted({c.stock_length for c in self.cuts})

    @property
    def generations_run(self) -> Optional[int]:
        runs = [g.generations_run for g in self.groups if g.generations_run is not None]
        return max(runs) if runs else None

    @property
    def stop_reason(self) -> Optional[str]:
        # first genetic group that did not simply run out of generations
        reasons = [g.stop_reason for g in self.groups if g.stop_reason]
        for r in reasons:
            if r != "max_generations":
                return r
        return reasons[0] if reasons else None


@dataclass(frozen=True)
class AlgorithmAttempt:
    algorithm: Algorithm
    success: bool
    result: Optional[OptimizationResult] = None
    error: Optional[Dict[str, Any]] = None
    execution_time_ms: float = 0.0


@dataclass(frozen=True)
class OptimizationComparison:
    attempts: List[AlgorithmAttempt]         # successes ranked best first, then failures
    pareto: List[Algorithm]                  # non-dominated over (waste, cost, complexity)

    @property
    def best(self) -> Optional[OptimizationResult]:
        for a in self.attempts:
            if a.success:
                return a.result
        return None


# profile type, its items, candidate (stock length, material) pairs
_Group = Tuple[str, List[OptimizationItem], List[Tuple[float, Optional[MaterialStockLength]]]]


# ----------------------------
# Attempt tasks (picklable, run inline or in worker processes)
# ----------------------------

@dataclass(frozen=True)
class _AttemptTask:
    group: int
    algorithm: Algorithm
    profile_type: str
    stock_length: float
    units: Tuple[DemandUnit, ...]
    constraints: OptimizationConstraints
    cost_model: CostModel
    policy: ScoringPolicy
    genetic: GeneticParams
    pooling: PoolingParams
    # non-empty: every bar picks its own length from these (ffd / bfd only)
    mixed_lengths: Tuple[float, ...] = ()


@dataclass(frozen=True)
class _AttemptOutcome:
    task: _AttemptTask
    cuts: List[Cut]
    metrics: PlanMetrics
    generations_run: Optional[int] = None
    stop_reason: Optional[str] = None
    elapsed_ms: float = 0.0


def _run_attempt(task: _AttemptTask, logger: Optional[Logger] = None) -> _AttemptOutcome:
    t0 = time.perf_counter()
    units, stock, cons = list(task.units), task.stock_length, task.constraints
    gens: Optional[int] = None
    stop: Optional[str] = None

    if task.mixed_lengths and task.algorithm in (Algorithm.FFD, Algorithm.BFD):
        cuts = pack_mixed(units, task.mixed_lengths, cons, best_fit=task.algorithm == Algorithm.BFD)
    elif task.algorithm == Algorithm.FFD:
        cuts = pack_ffd(units, stock, cons)
    elif task.algorithm == Algorithm.BFD:
        cuts = pack_bfd(units, stock, cons)
    elif task.algorithm == Algorithm.POOLING:
        cuts = pack_pooling(units, stock, cons, task.pooling, logger=logger)
    elif task.algorithm == Algorithm.GENETIC:
        out = optimize_genetic(
            units, stock, cons, task.genetic,
            cost_model=task.cost_model, policy=task.policy, logger=logger,
        )
        cuts, gens, stop = out.cuts, out.generations_run, out.stop_reason
    else:
        raise ValidationError(f"Unknown algorithm {task.algorithm!r}", field="algorithm")

    metrics = compute_plan_metrics(cuts, cons, task.cost_model, task.policy)
    return _AttemptOutcome(
        task=task,
        cuts=cuts,
        metrics=metrics,
        generations_run=gens,
        stop_reason=stop,
        elapsed_ms=(time.perf_counter() - t0) * 1000.0,
    )


def parse_algorithm(value: Union[str, Algorithm]) -> Algorithm:
    if isinstance(value, Algorithm):
        return value
    key = str(value).strip().lower().replace("-", "_")
    aliases = {"first_fit_decreasing": "ffd", "best_fit_decreasing": "bfd", "ga": "genetic", "pattern": "pooling"}
    try:
        return Algorithm(aliases.get(key, key))
    except ValueError:
        raise ValidationError(f"Unknown algorithm {value!r}", field="algorithm") from None


def _merge_costs(total: PlanMetrics, parts: Sequence[PlanMetrics]) -> PlanMetrics:
    """Plan-wide costs are the sum of per-group costs (each group may have its own material price)."""
    material = sum(p.material_cost for p in parts)
    waste = sum(p.waste_cost for p in parts)
    labor = sum(p.labor_cost for p in parts)
    cost = material + waste + labor
    per_m = cost / (total.total_stock_length / 1000.0) if total.total_stock_length > 0 else 0.0
    return replace(
        total,
        material_cost=material,
        waste_cost=waste,
        labor_cost=labor,
        total_cost=cost,
        cost_per_meter=per_m,
    )


# ----------------------------
# Optimizer
# ----------------------------

class Optimizer:
    """
    Entry point for optimization runs.

    max_workers: None = one worker per CPU, 1 = run every attempt inline.
    timeout_s: overall wall-clock budget for one optimize() / compare() call.
    mixed_lengths: ffd / bfd also try one plan per profile where every bar
        picks its own stock length; it only wins when it scores better.
    """

    def __init__(
        self,
        *,
        logger: Optional[Logger] = None,
        audit: Optional[AuditSink] = None,
        max_workers: Optional[int] = None,
        cost_model: Optional[CostModel] = None,
        scoring: Optional[ScoringPolicy] = None,
        genetic: Optional[GeneticParams] = None,
        pooling: Optional[PoolingParams] = None,
        timeout_s: Optional[float] = None,
        mixed_lengths: bool = False,
        defaults: Defaults = DEFAULTS,
    ):
        self.log = logger or get_logger()
        self.audit = audit
        self.max_workers = max_workers
        self.cost_model = cost_model or CostModel()
        self.scoring = scoring or DEFAULT_SCORING
        self.genetic = genetic or GeneticParams()
        self.pooling = pooling or PoolingParams()
        self.timeout_s = timeout_s
        self.mixed_lengths = mixed_lengths
        self.defaults = defaults

    # ---- audit ----

    def _emit(self, event: str, payload: Dict[str, Any]) -> None:
        if self.audit is None:
            return
        try:
            self.audit.record(event, payload)
        except Exception as e:
            self.log.warn(f"Audit sink failed on {event}: {type(e).__name__}: {e}")

    def _emit_failed(self, algo: Algorithm, e: Exception) -> None:
        if isinstance(e, OptimizerError):
            self._emit("optimization_failed", {"algorithm": algo.value, "code": e.code, "message": e.message})
        else:
            self._emit(
                "optimization_failed",
                {"algorithm": algo.value, "code": InternalFault.code, "message": type(e).__name__},
            )

    def _emit_completed(self, res: OptimizationResult) -> None:
        m = res.metrics
        self._emit(
            "optimization_completed",
            {
                "algorithm": res.algorithm.value,
                "stocks": m.stock_count,
                "efficiency": round(m.efficiency, 2),
                "executionTimeMs": round(res.execution_time_ms, 1),
            },
        )
        self.log.debug(
            f"{res.algorithm.value}: {m.stock_count} bars, efficiency={m.efficiency:.2f}% "
            f"quality={m.quality_score:.2f} in {res.execution_time_ms:.0f} ms"
        )

    # ---- planning ----

    def _candidates(
        self,
        profile_type: str,
        stock_lengths: Sequence[float],
        materials: Sequence[MaterialStockLength],
    ) -> List[Tuple[float, Optional[MaterialStockLength]]]:
        own = [m for m in materials if m.profile_type == profile_type]
        if own:
            return [(float(m.stock_length), m) for m in own]
        if stock_lengths:
            return [(float(s), None) for s in stock_lengths]
        return [(self.defaults.default_stock_length, None)]

    def _check_stock_lengths(self, lengths: Sequence[float]) -> None:
        d = self.defaults
        for i, s in enumerate(lengths):
            if not (d.min_stock_length <= float(s) <= d.max_stock_length):
                raise ValidationError(
                    f"Stock length {float(s):g} outside [{d.min_stock_length:g}, {d.max_stock_length:g}] mm",
                    {"value": s},
                    field="stockLengths",
                    index=i,
                )

    def _check_request(
        self,
        items: Sequence[OptimizationItem],
        stock_lengths: Sequence[float],
        materials: Sequence[MaterialStockLength],
    ) -> None:
        if not items:
            raise EmptyItemList("No items to optimize")
        self._check_stock_lengths(stock_lengths)
        self._check_stock_lengths([m.stock_length for m in materials])

    def _pool_size(self, n_tasks: int) -> int:
        cpu = os.cpu_count() or 1
        if self.max_workers is None:
            return max(1, min(cpu, n_tasks))
        return max(1, min(int(self.max_workers), cpu, n_tasks))

    def _mixed_cost_model(self, candidates: Sequence[Tuple[float, Optional[MaterialStockLength]]]) -> CostModel:
        # bars of several materials are priced at the dearest per-mm rate among them
        models = [self.cost_model.for_material(m) for _, m in candidates]
        return max(models, key=lambda c: c.cost_per_mm)

    def _groups(
        self,
        items: Sequence[OptimizationItem],
        stock_lengths: Sequence[float],
        materials: Sequence[MaterialStockLength],
    ) -> List[_Group]:
        by_profile: Dict[str, List[OptimizationItem]] = {}
        for it in items:
            by_profile.setdefault(it.profile_type, []).append(it)
        return [(p, group_items, self._candidates(p, stock_lengths, materials)) for p, group_items in by_profile.items()]

    def _wants_mixed(self, algorithm: Algorithm, lengths: Sequence[float]) -> bool:
        return self.mixed_lengths and algorithm in (Algorithm.FFD, Algorithm.BFD) and len(set(lengths)) > 1

    def _task_count(self, algorithm: Algorithm, groups: Sequence[_Group]) -> int:
        return sum(len(c) + int(self._wants_mixed(algorithm, [s for s, _ in c])) for _, _, c in groups)

    def _tasks(
        self,
        algorithm: Algorithm,
        groups: Sequence[_Group],
        constraints: OptimizationConstraints,
        genetic: GeneticParams,
    ) -> List[_AttemptTask]:
        tasks: List[_AttemptTask] = []
        for g, (profile, group_items, candidates) in enumerate(groups):
            units = tuple(expand_items(group_items))
            demand = ", ".join(f"{n} x {length:g}" for length, n in compact_demands(group_items))
            self.log.debug(f"{algorithm.value} {profile}: {demand} on {len(candidates)} candidate length(s)")
            common = dict(
                group=g,
                algorithm=algorithm,
                profile_type=profile,
                units=units,
                constraints=constraints,
                policy=self.scoring,
                genetic=genetic,
                pooling=self.pooling,
            )
            for stock, material in candidates:
                tasks.append(_AttemptTask(stock_length=stock, cost_model=self.cost_model.for_material(material), **common))

            lengths = tuple(sorted({s for s, _ in candidates}))
            if self._wants_mixed(algorithm, lengths):
                tasks.append(
                    _AttemptTask(
                        stock_length=lengths[-1],
                        cost_model=self._mixed_cost_model(candidates),
                        mixed_lengths=lengths,
                        **common,
                    )
                )
        return tasks

    def _genetic_for(self, n_tasks: int, t_end: Optional[float]) -> GeneticParams:
        genetic = self.genetic
        if t_end is not None:
            budget = max(0.0, t_end - time.perf_counter())
            genetic = replace(genetic, max_execution_time_s=min(genetic.max_execution_time_s, budget))
        if self._pool_size(n_tasks) > 1:
            # no nested pools inside attempt workers
            genetic = replace(genetic, workers=1)
        return genetic

    def _timed_out(self, done: int) -> OptimizationTimeout:
        return OptimizationTimeout(
            f"Optimization exceeded {self.timeout_s:g} s",
            {"timeoutS": self.timeout_s, "completedAttempts": done},
        )

    def _execute(self, tasks: List[_AttemptTask], t_end: Optional[float]) -> List[Union[_AttemptOutcome, Exception]]:
        """
        Run every attempt, one result per task in task order. Failures are
        returned in place of the outcome; attempts that did not finish before
        the deadline come back as OptimizationTimeout.
        """
        workers = self._pool_size(len(tasks))
        out: List[Union[_AttemptOutcome, Exception]] = []

        if workers <= 1:
            for t in tasks:
                if t_end is not None and time.perf_counter() >= t_end:
                    out.append(self._timed_out(sum(1 for o in out if isinstance(o, _AttemptOutcome))))
                    continue
                try:
                    out.append(_run_attempt(t, self.log))
                except Exception as e:
                    out.append(e)
            return out

        self.log.debug(f"Running {len(tasks)} attempts on {workers} worker processes")
        ex = ProcessPoolExecutor(max_workers=workers)
        try:
            futures: List[Future] = [ex.submit(_run_attempt, t) for t in tasks]
            timeout = None if t_end is None else max(0.0, t_end - time.perf_counter())
            done, pending = wait(futures, timeout=timeout)
            for f in pending:
                f.cancel()
            for f in futures:
                if f in pending:
                    out.append(self._timed_out(len(done)))
                    continue
                try:
                    out.append(f.result())
                except Exception as e:
                    out.append(e)
        finally:
            ex.shutdown(wait=False, cancel_futures=True)
        return out

    def _select(
        self,
        groups: Sequence[_Group],
        tasks: Sequence[_AttemptTask],
        outcomes: Sequence[Union[_AttemptOutcome, Exception]],
        materials: Sequence[MaterialStockLength],
        warnings: List[str],
    ) -> Tuple[List[Cut], List[GroupPlan]]:
        """Best attempt per group. Timeouts and unexpected errors fail the whole plan."""
        for o in outcomes:
            if isinstance(o, Exception) and (isinstance(o, OptimizationTimeout) or not isinstance(o, OptimizerError)):
                raise o

        all_cuts: List[Cut] = []
        plans: List[GroupPlan] = []
        for g, (profile, _, _) in enumerate(groups):
            ok: List[_AttemptOutcome] = []
            errors: List[OptimizerError] = []
            for t, o in zip(tasks, outcomes):
                if t.group != g:
                    continue
                if isinstance(o, _AttemptOutcome):
                    ok.append(o)
                else:
                    errors.append(o)
                    self.log.debug(f"{profile} @ {t.stock_length:g}: {o.code} {o.message}")
            if not ok:
                # prefer the most specific domain error
                for e in errors:
                    if isinstance(e, InvalidCuttingParameters):
                        raise e
                raise errors[0]

            best = min(ok, key=lambda o: (-o.metrics.quality_score, o.metrics.total_cost))
            self._check_availability(profile, best.cuts, materials, warnings)
            plans.append(
                GroupPlan(
                    profile_type=profile,
                    stock_length=best.task.stock_length,
                    cuts=best.cuts,
                    metrics=best.metrics,
                    candidates_tried=len(ok) + len(errors),
                    generations_run=best.generations_run,
                    stop_reason=best.stop_reason,
                    mixed=bool(best.task.mixed_lengths),
                )
            )
            all_cuts.extend(best.cuts)

        return renumber_cuts(all_cuts), plans

    def _check_availability(
        self,
        profile: str,
        cuts: Sequence[Cut],
        materials: Sequence[MaterialStockLength],
        warnings: List[str],
    ) -> None:
        for m in materials:
            if m.profile_type != profile or m.availability is None:
                continue
            used = sum(1 for c in cuts if c.stock_length == float(m.stock_length))
            if used > m.availability:
                msg = (
                    f"{profile}: plan uses {used} bars of {float(m.stock_length):g} mm "
                    f"but only {m.availability} are available"
                )
                self.log.warn(msg)
                warnings.append(msg)

    def _finish(
        self,
        algo: Algorithm,
        items: Sequence[OptimizationItem],
        constraints: OptimizationConstraints,
        materials: Sequence[MaterialStockLength],
        groups: Sequence[_Group],
        tasks: Sequence[_AttemptTask],
        outcomes: Sequence[Union[_AttemptOutcome, Exception]],
        warnings: List[str],
        work_order_id: Optional[str],
        spent_ms: float,
    ) -> OptimizationResult:
        """Pick, validate and score one algorithm's plan from its finished attempts."""
        t0 = time.perf_counter()
        warnings = list(warnings)
        unit_count = sum(it.quantity for it in items)

        cuts, plans = self._select(groups, tasks, outcomes, materials, warnings)
        raise_on_errors(validate_plan(items, cuts, constraints))

        metrics = compute_plan_metrics(cuts, constraints, self.cost_model, self.scoring)
        metrics = _merge_costs(metrics, [p.metrics for p in plans])

        if metrics.waste_percentage > constraints.max_waste_percentage:
            msg = (
                f"Waste {metrics.waste_percentage:.1f}% exceeds max_waste_percentage "
                f"{constraints.max_waste_percentage:g}%"
            )
            self.log.warn(msg)
            warnings.append(msg)

        recs = build_recommendations(metrics, algo, unit_count, constraints, self.defaults)
        return OptimizationResult(
            algorithm=algo,
            cuts=cuts,
            metrics=metrics,
            constraints=constraints,
            groups=plans,
            recommendations=recs,
            warnings=warnings,
            execution_time_ms=spent_ms + (time.perf_counter() - t0) * 1000.0,
            work_order_id=work_order_id,
            unit_count=unit_count,
        )

    # ---- public API ----

    def optimize(
        self,
        algorithm: Union[str, Algorithm],
        items: Sequence[OptimizationItem],
        constraints: Optional[OptimizationConstraints] = None,
        stock_lengths: Optional[Sequence[float]] = None,
        materials: Optional[Sequence[MaterialStockLength]] = None,
        work_order_id: Optional[str] = None,
        *,
        warnings: Optional[List[str]] = None,
    ) -> OptimizationResult:
        """
        Optimize one request. Raises OptimizerError subclasses; audit events are
        emitted for start, completion and failure.
        """
        t0 = time.perf_counter()
        t_end = t0 + self.timeout_s if self.timeout_s is not None else None
        algo = parse_algorithm(algorithm)
        constraints = constraints or self.defaults.default_constraints
        stock_lengths = list(stock_lengths or [])
        materials = list(materials or [])

        self._emit(
            "optimization_started",
            {
                "algorithm": algo.value,
                "items": len(items),
                "units": sum(it.quantity for it in items),
                "workOrderId": work_order_id,
            },
        )
        try:
            self._check_request(items, stock_lengths, materials)
            groups = self._groups(items, stock_lengths, materials)
            genetic = self._genetic_for(self._task_count(algo, groups), t_end)
            tasks = self._tasks(algo, groups, constraints, genetic)
            outcomes = self._execute(tasks, t_end)
            result = self._finish(
                algo, items, constraints, materials, groups, tasks, outcomes,
                list(warnings or []), work_order_id, (time.perf_counter() - t0) * 1000.0,
            )
        except Exception as e:
            self._emit_failed(algo, e)
            raise

        self._emit_completed(result)
        return result

    def compare(
        self,
        algorithms: Sequence[Union[str, Algorithm]],
        items: Sequence[OptimizationItem],
        constraints: Optional[OptimizationConstraints] = None,
        stock_lengths: Optional[Sequence[float]] = None,
        materials: Optional[Sequence[MaterialStockLength]] = None,
        work_order_id: Optional[str] = None,
        *,
        warnings: Optional[List[str]] = None,
    ) -> OptimizationComparison:
        """
        Run several algorithms on the same input. Every (algorithm, profile,
        stock length) attempt goes through one process pool; one failing
        algorithm never fails the comparison.
        """
        t0 = time.perf_counter()
        t_end = t0 + self.timeout_s if self.timeout_s is not None else None
        algos = list(dict.fromkeys(parse_algorithm(a) for a in algorithms))
        constraints = constraints or self.defaults.default_constraints
        stock_lengths = list(stock_lengths or [])
        materials = list(materials or [])
        attempts: List[AlgorithmAttempt] = []

        for algo in algos:
            self._emit(
                "optimization_started",
                {"algorithm": algo.value, "items": len(items), "workOrderId": work_order_id, "mode": "compare"},
            )

        def failed(algo: Algorithm, e: Exception, ms: float) -> AlgorithmAttempt:
            if not isinstance(e, OptimizerError):
                self.log.error(f"compare: {algo.value} failed with {type(e).__name__}: {e}")
            self._emit_failed(algo, e)
            return AlgorithmAttempt(algorithm=algo, success=False, error=as_error_dict(e), execution_time_ms=ms)

        try:
            self._check_request(items, stock_lengths, materials)
            groups = self._groups(items, stock_lengths, materials)
        except Exception as e:
            ms = (time.perf_counter() - t0) * 1000.0
            attempts = [failed(a, e, ms) for a in algos]
            return OptimizationComparison(attempts=attempts, pareto=[])

        genetic = self._genetic_for(sum(self._task_count(a, groups) for a in algos), t_end)
        per_algo = {a: self._tasks(a, groups, constraints, genetic) for a in algos}
        all_tasks = [t for a in algos for t in per_algo[a]]
        all_outcomes = self._execute(all_tasks, t_end)

        k = 0
        for algo in algos:
            tasks = per_algo[algo]
            outcomes = all_outcomes[k:k + len(tasks)]
            k += len(tasks)
            spent = sum(o.elapsed_ms for o in outcomes if isinstance(o, _AttemptOutcome))
            try:
                res = self._finish(
                    algo, items, constraints, materials, groups, tasks, outcomes,
                    list(warnings or []), work_order_id, spent,
                )
            except Exception as e:
                attempts.append(failed(algo, e, spent))
                continue
            self._emit_completed(res)
            attempts.append(
                AlgorithmAttempt(algorithm=algo, success=True, result=res, execution_time_ms=res.execution_time_ms)
            )

        ok = [a for a in attempts if a.success and a.result is not None]
        ok.sort(key=lambda a: (-a.result.metrics.quality_score, a.result.metrics.total_cost))
        failures = [a for a in attempts if not a.success]
        front = pareto_front(
            ok,
            lambda a: (a.result.metrics.total_waste, a.result.metrics.total_cost, a.result.metrics.cutting_complexity),
        )
        return OptimizationComparison(attempts=ok + failures, pareto=[a.algorithm for a in front])

    def handle_request(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """
        JSON-style request -> JSON-style response. Never raises.

        Request keys: items, algorithm, constraints, stockLengths | stockLength,
        materialStockLengths, workOrderId, alternatives (list of algorithms)
        or generateAlternatives with an optional maxAlternatives cap.
        """
        from .utils import comparison_to_dicts, result_to_dict

        t0 = time.perf_counter()
        try:
            if not isinstance(payload, Mapping):
                raise ValidationError("Request must be an object", field="request")
            rows = payload.get("items")
            if rows is None:
                raise ValidationError("items is required", field="items")
            if not isinstance(rows, (list, tuple)):
                raise ValidationError("items must be a list", field="items")

            items = normalize_items(rows, defaults=self.defaults).items
            notes: List[str] = []
            constraints = resolve_constraints(
                payload.get("constraints"), defaults=self.defaults, notes=notes, logger=self.log
            )
            stock_lengths = stock_lengths_from(payload)
            materials = materials_from(payload)
            algo = parse_algorithm(payload.get("algorithm") or Algorithm.FFD)
            wo = payload.get("workOrderId")

            result = self.optimize(
                algo, items, constraints, stock_lengths, materials,
                str(wo) if wo is not None else None, warnings=notes,
            )

            alternatives: List[Dict[str, Any]] = []
            others = alternative_algorithms(payload, algo)
            if others:
                cmp_ = self.compare(others, items, constraints, stock_lengths, materials)
                alternatives = comparison_to_dicts(cmp_)

            body = result_to_dict(result)
            return {
                "success": True,
                "cuttingPlan": body["cuttingPlan"],
                "metrics": body["metrics"],
                "recommendations": body["recommendations"],
                "alternatives": alternatives,
                "executionTimeMs": round((time.perf_counter() - t0) * 1000.0, 3),
                "warnings": list(result.warnings),
            }
        except Exception as e:
            if not isinstance(e, OptimizerError):
                self.log.error(f"Unexpected {type(e).__name__} while handling request: {e}")
            return {
                "success": False,
                "error": as_error_dict(e),
                "executionTimeMs": round((time.perf_counter() - t0) * 1000.0, 3),
            }


def stock_lengths_from(payload: Mapping[str, Any]) -> List[float]:
    raw = payload.get("stockLengths")
    if raw is None and payload.get("stockLength") is not None:
        raw = [payload["stockLength"]]
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raw = [raw]
    out: List[float] = []
    for i, v in enumerate(raw):
        try:
            out.append(float(v))
        except (TypeError, ValueError):
            raise ValidationError(f"Stock length {v!r} is not a number", field="stockLengths", index=i) from None
    return out


def alternative_algorithms(payload: Mapping[str, Any], primary: Algorithm) -> List[Algorithm]:
    """
    Algorithms to compare next to `primary`: the `alternatives` list, or every
    other algorithm when `generateAlternatives` is set; `maxAlternatives` caps it.
    """
    names = payload.get("alternatives") or []
    if not names and payload.get("generateAlternatives"):
        names = list(Algorithm)
    if not isinstance(names, (list, tuple)):
        raise ValidationError("alternatives must be a list", field="alternatives")
    others = list(dict.fromkeys(a for a in (parse_algorithm(x) for x in names) if a != primary))
    try:
        cap = _opt_int(payload.get("maxAlternatives"))
    except (TypeError, ValueError):
        raise ValidationError("maxAlternatives must be an integer", field="maxAlternatives") from None
    if cap is not None:
        others = others[: max(cap, 0)]
    return others


def materials_from(payload: Mapping[str, Any]) -> List[MaterialStockLength]:
    """`materialStockLengths` (or `materials`) entries of a request or job."""
    rows = payload.get("materialStockLengths") or payload.get("materials") or []
    if not isinstance(rows, (list, tuple)):
        raise ValidationError("materialStockLengths must be a list", field="materialStockLengths")
    out: List[MaterialStockLength] = []
    for i, r in enumerate(rows):
        if not isinstance(r, Mapping):
            raise ValidationError("Material entry must be an object", field="materialStockLengths", index=i)
        profile = r.get("profileType") or r.get("profile_type")
        length = r.get("stockLength", r.get("stock_length"))
        if not profile or length is None:
            raise ValidationError(
                "Material entry needs profileType and stockLength", field="materialStockLengths", index=i
            )
        try:
            out.append(
                MaterialStockLength(
                    profile_type=str(profile),
                    stock_length=float(length),
                    cost_per_mm=_opt_float(r.get("costPerMm", r.get("cost_per_mm"))),
                    cost_per_stock=_opt_float(r.get("costPerStock", r.get("cost_per_stock"))),
                    availability=_opt_int(r.get("availability")),
                    material_grade=str(r.get("materialGrade", r.get("material_grade", "")) or ""),
                )
            )
        except (TypeError, ValueError):
            raise ValidationError(
                "Material entry has a non-numeric value", field="materialStockLengths", index=i
            ) from None
    return out


def _opt_float(v: Any) -> Optional[float]:
    return None if v is None else float(v)


def _opt_int(v: Any) -> Optional[int]:
    return None if v is None else int(v)
