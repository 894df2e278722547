# profilecut/cli.py
# Command line entry point:
# - job JSON input (same shape as Optimizer.handle_request) or items CSV
# - single algorithm run or side-by-side comparison; a job's materialStockLengths
#   and alternatives / generateAlternatives are honoured
# - optional CSV / JSON export folder and cut-diagram PNG
#
# Run:
#   python -m profilecut --job job.json
#   python -m profilecut --items items.csv --stock 6000,6500 --algorithm bfd --out out/
#   python -m profilecut --items items.csv --compare ffd,bfd,pooling,genetic
#
# CSV items format (header required):
#   profile_type,length,quantity[,work_order_id]

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import parse_stock_lengths
from .constraints import resolve_constraints
from .errors import OptimizerError
from .io_csv import export_all, read_items_csv
from .io_json import load_job_json
from .logger import Logger, get_logger, set_verbose
from .normalize import normalize_items
from .orchestrator import (
    Optimizer,
    OptimizationComparison,
    OptimizationResult,
    alternative_algorithms,
    materials_from,
    parse_algorithm,
    stock_lengths_from,
)
from .solver_genetic import GeneticParams
from .utils import comparison_to_dicts, save_result_json, timer


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Aluminum profile 1D cutting optimizer")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--job", type=str, help="Path to job JSON")
    src.add_argument("--items", type=str, help="Path to items CSV")
    p.add_argument("--stock", type=str, default="", help="Stock lengths in mm, e.g. 6000 or 6000,6500")
    p.add_argument("--algorithm", type=str, default="", help="ffd | bfd | pooling | genetic")
    p.add_argument("--compare", type=str, default="", help="Comma-separated algorithms to compare")
    p.add_argument("--kerf", type=float, default=None, help="Saw kerf in mm")
    p.add_argument("--safety", type=float, default=None, help="Safety margin at each stock end in mm")
    p.add_argument("--time", type=float, default=None, help="Genetic time budget in seconds")
    p.add_argument("--workers", type=int, default=None, help="Worker processes (1 = inline)")
    p.add_argument("--mixed", action="store_true", help="ffd/bfd: let every bar pick its own stock length")
    p.add_argument("--out", type=str, default="", help="Output directory for CSV/JSON exports (optional)")
    p.add_argument("--png", type=str, default="", help="Write the cut diagram to this PNG path")
    p.add_argument("--no_plot", action="store_true", help="Do not show the matplotlib cut diagram")
    p.add_argument("--verbose", action="store_true", help="Debug logging")
    return p


def _job_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    if args.job:
        job = load_job_json(Path(args.job))
    else:
        job = {"items": read_items_csv(Path(args.items))}
        if not job["items"]:
            raise SystemExit("No items found in CSV.")

    if args.stock:
        job["stockLengths"] = list(parse_stock_lengths(args.stock))
    if args.algorithm:
        job["algorithm"] = args.algorithm
    cons = job.get("constraints") or {}
    if not isinstance(cons, dict):
        # left as is; resolve_constraints reports it
        return job
    cons = dict(cons)
    if args.kerf is not None:
        cons["kerfWidth"] = args.kerf
    if args.safety is not None:
        cons["safetyMargin"] = args.safety
    job["constraints"] = cons
    return job


def _print_result(res: OptimizationResult, log: Logger) -> None:
    m = res.metrics
    print(f"Algorithm: {res.algorithm.value}")
    print(f"Stocks used: {m.stock_count}")
    print(f"Efficiency: {m.efficiency:.2f}% ({m.efficiency_category})")
    print(f"Total waste: {m.total_waste:,.1f} mm ({m.waste_percentage:.2f}%), reclaimable {m.reclaimable_waste:,.1f} mm")
    print(f"Total cost: {m.total_cost:,.2f} (material {m.material_cost:,.2f}, waste {m.waste_cost:,.2f}, labor {m.labor_cost:,.2f})")
    print(f"Quality score: {m.quality_score:.2f}")

    for c in res.cuts:
        print(
            f"- Stock {c.stock_index + 1}: {c.profile_type} {c.stock_length:g} mm | {c.plan_label} | "
            f"remaining {c.remaining_length:,.1f} mm ({c.waste_category.value})"
        )
    for w in res.warnings:
        log.warn(w)
    for r in res.recommendations:
        print(f"* [{r.severity}] {r.message}: {r.suggestion}")


def _print_comparison(cmp_: OptimizationComparison) -> None:
    for row in comparison_to_dicts(cmp_):
        if row["success"]:
            print(
                f"{row['rank']}. {row['algorithm']}: stocks={row['stockCount']} "
                f"efficiency={row['efficiency']:.2f}% waste={row['totalWaste']:,.1f} mm "
                f"cost={row['totalCost']:,.2f} quality={row['qualityScore']:.2f}"
                + (" [pareto]" if row["paretoOptimal"] else "")
            )
        else:
            print(f"x. {row['algorithm']}: {row['error']['code']} {row['error']['message']}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_argparser().parse_args(argv)
    if args.verbose:
        set_verbose(True)
    log = get_logger()

    job = _job_from_args(args)
    genetic = GeneticParams(max_execution_time_s=args.time) if args.time is not None else None
    opt = Optimizer(logger=log, max_workers=args.workers, genetic=genetic, mixed_lengths=args.mixed)

    try:
        items = normalize_items(job["items"]).items
        constraints = resolve_constraints(job.get("constraints"), logger=log)
        stock_lengths = stock_lengths_from(job)
        materials = materials_from(job)
        wo = job.get("workOrderId")
        wo = str(wo) if wo is not None else None

        if args.compare:
            algos = [parse_algorithm(a) for a in args.compare.split(",") if a.strip()]
            with timer("compare") as t:
                cmp_ = opt.compare(algos, items, constraints, stock_lengths, materials, wo)
            _print_comparison(cmp_)
            log.info(f"Compared {len(algos)} algorithms in {t['seconds']:.2f} s")
            res = cmp_.best
            if res is None:
                return 1
        else:
            algo = parse_algorithm(job.get("algorithm") or "ffd")
            res = opt.optimize(algo, items, constraints, stock_lengths, materials, wo)
            _print_result(res, log)
            others = alternative_algorithms(job, algo)
            if others:
                print("Alternatives:")
                _print_comparison(opt.compare(others, items, constraints, stock_lengths, materials, wo))
    except OptimizerError as e:
        log.error(f"{e.code}: {e.message}")
        return 2

    if args.out:
        out_dir = Path(args.out)
        export_all(res.cuts, res.metrics, out_dir, prefix="plan", algorithm=res.algorithm.value)
        save_result_json(res, out_dir / "plan.json")
        log.info(f"Exported plan to {out_dir}")

    if args.png or not args.no_plot:
        from .plotting import plot_plan, save_plan_png

        if args.png:
            save_plan_png(res.cuts, args.png, title=f"{res.algorithm.value}: {res.metrics.stock_count} bars")
        if not args.no_plot:
            import matplotlib.pyplot as plt

            plot_plan(res.cuts)
            plt.show()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
