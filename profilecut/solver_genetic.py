# profilecut/solver_genetic.py
# Genetic optimizer for 1D cutting.
#
# Gene: a permutation of the unit demands. Decoding packs the pieces first-fit
# in gene order, so every permutation is a feasible plan and the search is over
# packing orders. Fitness is the plan scorer's quality score (higher = better).
#
# - population seeded with the FFD order, a long/short interleave and random shuffles
# - tournament selection, order crossover (OX), swap / inversion mutation
# - elitism: the best individuals survive every generation unchanged
# - FFD and BFD baselines seed the best-so-far, so the result is never worse
# - stops on generation count, wall-clock budget (checked before every
#   evaluation) or when the best fitness stalls (early stop)
#
# Fitness evaluation of a generation can run on a process pool (workers > 1).

from __future__ import annotations

import random
import time
from concurrent.futures import ProcessPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .config import DEFAULTS, adaptive_ga_size
from .costing import CostModel
from .errors import OptimizationFailed
from .logger import Logger, get_logger
from .metrics import compute_plan_metrics
from .scoring import DEFAULT_SCORING, ScoringPolicy
from .solver_heuristic import check_fits, pack_bfd, pack_in_order, sort_decreasing
from .types import Cut, DemandUnit, OptimizationConstraints

Gene = List[int]


@dataclass(frozen=True)
class GeneticParams:
    population_size: Optional[int] = None  # None = adaptive to item count
    generations: Optional[int] = None      # None = adaptive to item count
    mutation_rate: float = DEFAULTS.ga_mutation_rate
    crossover_rate: float = DEFAULTS.ga_crossover_rate
    tournament_size: int = 3
    elite_count: int = 1
    max_execution_time_s: float = DEFAULTS.ga_max_execution_time_s
    early_stop_generations: int = 15
    seed: int = 12345

    # Parallel fitness evaluation (process pool) for large populations
    workers: int = 1
    parallel_threshold: int = 40


@dataclass(frozen=True)
class GeneticOutcome:
    cuts: List[Cut]
    fitness: float
    generations_run: int
    stop_reason: str  # "max_generations" | "time_limit" | "converged" | "empty"
    population_size: int
    history: Tuple[float, ...] = field(default_factory=tuple)  # best fitness per generation
    evaluations: int = 0
    discarded: int = 0


@dataclass(frozen=True)
class PlanEvaluator:
    """Decode a gene into cuts and score it. Picklable, so it can live in worker processes."""
    units: Tuple[DemandUnit, ...]
    stock_length: float
    constraints: OptimizationConstraints
    cost_model: CostModel
    policy: ScoringPolicy

    def decode(self, gene: Sequence[int]) -> List[Cut]:
        return pack_in_order([self.units[i] for i in gene], self.stock_length, self.constraints, validate=False)

    def fitness_of(self, cuts: Sequence[Cut]) -> float:
        return compute_plan_metrics(cuts, self.constraints, self.cost_model, self.policy).quality_score

    def __call__(self, gene: Sequence[int]) -> float:
        return self.fitness_of(self.decode(gene))


def _safe_eval(evaluator: PlanEvaluator, gene: Sequence[int]) -> Tuple[Optional[float], str]:
    try:
        return evaluator(gene), ""
    except Exception as e:  # one bad individual must not end the run
        return None, f"{type(e).__name__}: {e}"


_WORKER_EVALUATOR: Optional[PlanEvaluator] = None


def _init_worker(evaluator: PlanEvaluator) -> None:
    global _WORKER_EVALUATOR
    _WORKER_EVALUATOR = evaluator


def _evaluate_in_worker(gene: Sequence[int]) -> Tuple[Optional[float], str]:
    assert _WORKER_EVALUATOR is not None
    return _safe_eval(_WORKER_EVALUATOR, gene)


# ----------------------------
# Operators
# ----------------------------

def order_crossover(p1: Sequence[int], p2: Sequence[int], rng: random.Random) -> Gene:
    """OX: copy a slice of p1, fill the other positions in p2's relative order."""
    n = len(p1)
    if n < 2:
        return list(p1)
    a, b = sorted(rng.sample(range(n), 2))
    child: List[Optional[int]] = [None] * n
    child[a:b + 1] = p1[a:b + 1]
    used = set(p1[a:b + 1])
    fill = iter(g for g in p2 if g not in used)
    for i in range(n):
        if child[i] is None:
            child[i] = next(fill)
    return [g for g in child if g is not None]


def swap_mutation(gene: Sequence[int], rng: random.Random) -> Gene:
    out = list(gene)
    if len(out) < 2:
        return out
    i, j = rng.sample(range(len(out)), 2)
    out[i], out[j] = out[j], out[i]
    return out


def inversion_mutation(gene: Sequence[int], rng: random.Random) -> Gene:
    out = list(gene)
    if len(out) < 3:
        return out
    i, j = sorted(rng.sample(range(len(out)), 2))
    out[i:j + 1] = reversed(out[i:j + 1])
    return out


def tournament_select(pop: Sequence[Tuple[float, Gene]], k: int, rng: random.Random) -> Gene:
    contenders = rng.sample(range(len(pop)), min(k, len(pop)))
    best = max(contenders, key=lambda i: (pop[i][0], -i))
    return pop[best][1]


def _interleave(order: Sequence[int]) -> Gene:
    """Longest, shortest, second longest, ... (pairs big pieces with small fillers)."""
    out: Gene = []
    lo, hi = 0, len(order) - 1
    while lo <= hi:
        out.append(order[lo])
        if lo != hi:
            out.append(order[hi])
        lo += 1
        hi -= 1
    return out


def _reversed_ties(order: Sequence[int], units: Sequence[DemandUnit]) -> Gene:
    """Same length order, but equal lengths in reverse input order."""
    out: Gene = []
    run: Gene = []
    for g in order:
        if run and units[run[-1]].length != units[g].length:
            out.extend(reversed(run))
            run = []
        run.append(g)
    out.extend(reversed(run))
    return out


def _seed_genes(n: int, size: int, ffd_gene: Gene, units: Sequence[DemandUnit], rng: random.Random) -> List[Gene]:
    """Everything but the FFD gene itself: reversed ties, interleave, then shuffles."""
    seeds: List[Gene] = []
    for g in (_reversed_ties(ffd_gene, units), _interleave(ffd_gene)):
        if g != ffd_gene and g not in seeds:
            seeds.append(g)
    while len(seeds) < size - 1:
        g = list(range(n))
        rng.shuffle(g)
        seeds.append(g)
    return seeds[:max(0, size - 1)]


# ----------------------------
# Driver
# ----------------------------

class _Deadline:
    def __init__(self, seconds: float):
        self.t_end = time.perf_counter() + max(0.0, float(seconds))

    def expired(self) -> bool:
        return time.perf_counter() >= self.t_end

    def remaining(self) -> float:
        return max(0.0, self.t_end - time.perf_counter())


def optimize_genetic(
    units: Sequence[DemandUnit],
    stock_length: float,
    constraints: OptimizationConstraints,
    params: Optional[GeneticParams] = None,
    *,
    cost_model: Optional[CostModel] = None,
    policy: Optional[ScoringPolicy] = None,
    logger: Optional[Logger] = None,
) -> GeneticOutcome:
    params = params or GeneticParams()
    log = logger or get_logger()
    deadline = _Deadline(params.max_execution_time_s)

    check_fits(units, stock_length, constraints)
    n = len(units)
    if n == 0:
        return GeneticOutcome(cuts=[], fitness=0.0, generations_run=0, stop_reason="empty", population_size=0)

    auto_pop, auto_gens = adaptive_ga_size(n)
    pop_size = max(2, int(params.population_size or auto_pop))
    generations = max(0, int(params.generations if params.generations is not None else auto_gens))
    elite = max(1, min(int(params.elite_count), pop_size - 1))

    evaluator = PlanEvaluator(
        units=tuple(units),
        stock_length=stock_length,
        constraints=constraints,
        cost_model=cost_model or CostModel(),
        policy=policy or DEFAULT_SCORING,
    )
    rng = random.Random(params.seed)

    index_of = {id(u): i for i, u in enumerate(units)}
    ffd_gene = [index_of[id(u)] for u in sort_decreasing(units)]

    # Baselines are scored before the clock is consulted: FFD is the first
    # individual, BFD is kept as a ready plan.
    best_gene: Optional[Gene] = None
    best_fit = float("-inf")
    best_cuts: Optional[List[Cut]] = None
    try:
        bfd_cuts = pack_bfd(units, stock_length, constraints)
        best_fit = evaluator.fitness_of(bfd_cuts)
        best_cuts = bfd_cuts
    except Exception as e:
        log.warn(f"Genetic: BFD baseline could not be scored ({type(e).__name__}: {e})")

    seeded: List[Tuple[float, Gene]] = []
    ffd_fit, err = _safe_eval(evaluator, ffd_gene)
    if ffd_fit is None:
        log.warn(f"Genetic: FFD baseline could not be scored ({err})")
    else:
        seeded.append((ffd_fit, ffd_gene))
        if ffd_fit >= best_fit:
            best_fit, best_gene = ffd_fit, list(ffd_gene)

    evaluations = 1
    discarded = 0
    stop_reason = "max_generations"
    history: List[float] = []
    generations_run = 0

    executor: Optional[ProcessPoolExecutor] = None
    if params.workers > 1 and pop_size >= params.parallel_threshold:
        executor = ProcessPoolExecutor(
            max_workers=int(params.workers),
            initializer=_init_worker,
            initargs=(evaluator,),
        )

    def evaluate(genes: List[Gene]) -> Tuple[List[Tuple[float, Gene]], bool]:
        """Returns (scored individuals, deadline_hit)."""
        nonlocal evaluations, discarded
        scored: List[Tuple[float, Gene]] = []
        results: List[Tuple[Optional[float], str]] = []
        hit = False
        if executor is not None:
            try:
                for r in executor.map(_evaluate_in_worker, genes, timeout=deadline.remaining()):
                    results.append(r)
            except FuturesTimeout:
                hit = True
        else:
            for g in genes:
                if deadline.expired():
                    hit = True
                    break
                results.append(_safe_eval(evaluator, g))
        for g, (fit, err) in zip(genes, results):
            evaluations += 1
            if fit is None:
                discarded += 1
                log.warn(f"Genetic: discarded individual ({err})")
                continue
            scored.append((fit, g))
        return scored, hit

    try:
        scored, hit = evaluate(_seed_genes(n, pop_size, ffd_gene, units, rng))
        population = sorted(seeded + scored, key=lambda t: -t[0])
        if not population and best_cuts is None:
            raise OptimizationFailed(
                "Genetic optimizer could not produce any feasible individual",
                {"evaluations": evaluations, "discarded": discarded},
            )

        if population and population[0][0] > best_fit + 1e-9:
            best_fit, best_gene = population[0][0], list(population[0][1])

        if hit:
            stop_reason = "time_limit"
        else:
            stagnant = 0
            for gen in range(generations):
                if deadline.expired():
                    stop_reason = "time_limit"
                    break
                if not population:
                    break

                elites = population[:elite]
                children: List[Gene] = []
                while len(elites) + len(children) < pop_size:
                    p1 = tournament_select(population, params.tournament_size, rng)
                    p2 = tournament_select(population, params.tournament_size, rng)
                    if rng.random() < params.crossover_rate:
                        child = order_crossover(p1, p2, rng)
                    else:
                        child = list(p1)
                    if rng.random() < params.mutation_rate:
                        if stagnant >= 3:
                            child = inversion_mutation(child, rng)
                        else:
                            child = swap_mutation(child, rng)
                    children.append(child)

                scored, hit = evaluate(children)
                population = sorted(elites + scored, key=lambda t: -t[0])
                generations_run = gen + 1

                if population[0][0] > best_fit + 1e-9:
                    best_fit, best_gene = population[0][0], list(population[0][1])
                    stagnant = 0
                else:
                    stagnant += 1
                history.append(best_fit)
                log.debug(f"Genetic: gen {generations_run} best={best_fit:.4f} stagnant={stagnant}")

                if hit:
                    stop_reason = "time_limit"
                    break
                if stagnant >= params.early_stop_generations:
                    stop_reason = "converged"
                    break
    finally:
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

    if best_gene is not None:
        best_cuts = evaluator.decode(best_gene)
    assert best_cuts is not None

    log.debug(
        f"Genetic: stop={stop_reason} generations={generations_run} "
        f"evaluations={evaluations} discarded={discarded} best={best_fit:.4f}"
    )
    return GeneticOutcome(
        cuts=best_cuts,
        fitness=best_fit,
        generations_run=generations_run,
        stop_reason=stop_reason,
        population_size=pop_size,
        history=tuple(history),
        evaluations=evaluations,
        discarded=discarded,
    )
