# profilecut/tests_smoke.py
# Very small smoke tests you can run with:
#   python -m profilecut.tests_smoke
#
# These are not full unit tests, but they quickly tell you if
# the packers, scorer and orchestrator are wired correctly.

from __future__ import annotations

from profilecut.constraints import resolve_constraints
from profilecut.logger import Logger
from profilecut.orchestrator import Optimizer
from profilecut.types import OptimizationItem
from profilecut.validate import raise_on_errors, validate_plan

QUIET = Logger(enabled=False)


def test_basic_plan() -> None:
    items = [
        OptimizationItem("AL-40x40", 1000, quantity=5, original_index=0),
        OptimizationItem("AL-40x40", 1500, quantity=3, original_index=1),
    ]
    constraints = resolve_constraints({"kerfWidth": 5}, logger=QUIET)

    res = Optimizer(logger=QUIET, max_workers=1).optimize("ffd", items, constraints, stock_lengths=[6000])

    raise_on_errors(validate_plan(items, res.cuts, constraints))
    assert res.metrics.stock_count == 2
    assert abs(res.metrics.efficiency - 9500 / 12000 * 100) < 1e-6
    assert [c.plan_label for c in res.cuts] == ["3 x 1500 + 1 x 1000", "4 x 1000"]


def test_piece_alone_per_bar() -> None:
    items = [
        OptimizationItem("AL-40x40", 6000, original_index=0),
        OptimizationItem("AL-40x40", 5000, original_index=1),
        OptimizationItem("AL-40x40", 4000, original_index=2),
    ]
    res = Optimizer(logger=QUIET, max_workers=1).optimize("bfd", items, stock_lengths=[6100])

    assert res.metrics.stock_count == 3
    assert all(c.segment_count == 1 for c in res.cuts)


def main() -> None:
    print("Running smoke tests...")
    test_basic_plan()
    test_piece_alone_per_bar()
    print("OK")


if __name__ == "__main__":
    main()
