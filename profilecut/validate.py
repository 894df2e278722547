# profilecut/validate.py
# Validation utilities:
# - check every bar is feasible (pieces + kerf + safety margins fit the stock)
# - check cut count per bar and that segment positions run in order without overlap
# - check conservation: each item is cut exactly `quantity` times
#
# The orchestrator runs these on every plan before returning it; they are also
# handy to sanity-check a new packer during development.

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import OptimizationFailed
from .types import Cut, OptimizationConstraints, OptimizationItem, quantities_by_item

_EPS = 1e-6


@dataclass(frozen=True)
class ValidationIssue:
    level: str   # "ERROR" or "WARN"
    message: str
    stock_index: Optional[int] = None
    item_index: Optional[int] = None


def _validate_cut(c: Cut, constraints: OptimizationConstraints) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    si = c.stock_index

    if c.segment_count == 0:
        issues.append(ValidationIssue("WARN", "Bar has no pieces", stock_index=si))
        return issues

    if c.used_length > c.stock_length + _EPS:
        issues.append(
            ValidationIssue(
                "ERROR",
                f"Used length {c.used_length:g} exceeds stock length {c.stock_length:g}",
                stock_index=si,
            )
        )

    if c.segment_count > constraints.max_cuts_per_stock:
        issues.append(
            ValidationIssue(
                "ERROR",
                f"{c.segment_count} cuts exceed max {constraints.max_cuts_per_stock} per stock",
                stock_index=si,
            )
        )

    expected = c.safety_margin
    for s in c.segments:
        if s.length <= 0 or s.quantity <= 0:
            issues.append(
                ValidationIssue(
                    "ERROR",
                    f"Segment {s.sequence} has non-positive size ({s.quantity} x {s.length:g})",
                    stock_index=si,
                    item_index=s.item_index,
                )
            )
        if s.profile_type != c.profile_type:
            issues.append(
                ValidationIssue(
                    "ERROR",
                    f"Segment {s.sequence} profile {s.profile_type!r} differs from bar profile {c.profile_type!r}",
                    stock_index=si,
                    item_index=s.item_index,
                )
            )
        if s.position + _EPS < expected:
            issues.append(
                ValidationIssue(
                    "ERROR",
                    f"Segment {s.sequence} at {s.position:g} overlaps the previous cut (expected >= {expected:g})",
                    stock_index=si,
                    item_index=s.item_index,
                )
            )
        expected = s.position + (s.length + c.kerf_width) * s.quantity

    limit = c.stock_length - c.safety_margin
    if expected > limit + _EPS:
        issues.append(
            ValidationIssue(
                "ERROR",
                f"Last cut ends at {expected:g}, beyond the usable end {limit:g}",
                stock_index=si,
            )
        )
    return issues


def validate_cuts(cuts: Iterable[Cut], constraints: OptimizationConstraints) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    for c in cuts:
        issues.extend(_validate_cut(c, constraints))
    return issues


def validate_conservation(items: Sequence[OptimizationItem], cuts: Iterable[Cut]) -> List[ValidationIssue]:
    """Every item must be cut exactly `quantity` times, and nothing else may appear."""
    issues: List[ValidationIssue] = []
    cut_counts = quantities_by_item(cuts)
    wanted: Dict[int, int] = {}
    for it in items:
        wanted[it.original_index] = wanted.get(it.original_index, 0) + it.quantity

    for idx, qty in sorted(wanted.items()):
        got = cut_counts.get(idx, 0)
        if got != qty:
            issues.append(
                ValidationIssue("ERROR", f"Item {idx}: {got} pieces cut, {qty} requested", item_index=idx)
            )
    for idx in sorted(set(cut_counts) - set(wanted)):
        issues.append(
            ValidationIssue("ERROR", f"Item {idx}: {cut_counts[idx]} pieces cut but never requested", item_index=idx)
        )
    return issues


def validate_plan(
    items: Sequence[OptimizationItem],
    cuts: Sequence[Cut],
    constraints: OptimizationConstraints,
) -> List[ValidationIssue]:
    issues = validate_cuts(cuts, constraints)
    issues.extend(validate_conservation(items, cuts))
    if not cuts and items:
        issues.append(ValidationIssue("WARN", "Plan has 0 bars."))
    return issues


def raise_on_errors(issues: List[ValidationIssue]) -> None:
    errs = [i for i in issues if i.level.upper() == "ERROR"]
    if errs:
        msg = "\n".join(f"[{e.level}] stock={e.stock_index} item={e.item_index} :: {e.message}" for e in errs)
        raise OptimizationFailed(
            "Plan validation failed:\n" + msg,
            {"issues": [e.message for e in errs]},
        )
