# profilecut/solver_heuristic.py
# Deterministic bin-packing heuristics for 1D cutting:
# - First-Fit-Decreasing (FFD): first open bar with room
# - Best-Fit-Decreasing (BFD): open bar with the tightest room
# - pack_in_order: first-fit in the given order (decoder for the genetic optimizer)
# - pack_mixed: FFD/BFD over several stock lengths; each new bar is opened on the
#   length with the least offcut per piece, then shrunk to the shortest length
#   that still holds it
#
# Each piece consumes its length + one kerf. A bar starts with
# stock_length - 2 * safety_margin of room. Pieces that cannot fit on an empty
# bar are a hard error, never dropped.

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from .errors import InvalidCuttingParameters
from .types import Cut, DemandUnit, OptimizationConstraints, make_cut

_EPS = 1e-9


class _OpenBar:
    __slots__ = ("units", "remaining", "stock_length")

    def __init__(self, room: float, stock_length: float = 0.0):
        self.units: List[DemandUnit] = []
        self.remaining = room
        self.stock_length = stock_length


def check_fits(units: Sequence[DemandUnit], stock_length: float, constraints: OptimizationConstraints) -> None:
    """Raise InvalidCuttingParameters if any piece exceeds what one bar can deliver."""
    limit = constraints.max_piece_length(stock_length)
    if limit <= 0:
        raise InvalidCuttingParameters(
            f"Stock length {stock_length:g} mm leaves no usable length",
            {"stockLength": stock_length, "safetyMargin": constraints.safety_margin},
        )
    for u in units:
        if u.length > limit + _EPS:
            raise InvalidCuttingParameters(
                f"Piece {u.length:g} mm (item {u.item_index}) does not fit stock length {stock_length:g} mm",
                {"itemIndex": u.item_index, "length": u.length, "stockLength": stock_length, "maxPieceLength": limit},
            )


def sort_decreasing(units: Sequence[DemandUnit]) -> List[DemandUnit]:
    """Length descending; ties by item index then input order (stable, deterministic)."""
    order = sorted(range(len(units)), key=lambda i: (-units[i].length, units[i].item_index, i))
    return [units[i] for i in order]


def freeze_bars(
    bars: Sequence[Sequence[DemandUnit]],
    stock_length: float,
    constraints: OptimizationConstraints,
    *,
    start_index: int = 0,
) -> List[Cut]:
    return [
        make_cut(start_index + k, stock_length, units, constraints)
        for k, units in enumerate(bars)
        if units
    ]


def _fit_bars(
    units: Sequence[DemandUnit],
    constraints: OptimizationConstraints,
    new_bar: Callable[[DemandUnit], _OpenBar],
    *,
    tightest: bool,
) -> List[_OpenBar]:
    """
    Place pieces in the given order. First-fit takes the first open bar with
    room; tightest=True takes the bar with the least room left (earliest on ties).
    """
    kerf = constraints.kerf_width
    max_cuts = constraints.max_cuts_per_stock
    bars: List[_OpenBar] = []

    for u in units:
        need = u.length + kerf
        target = None
        for b in bars:
            if b.remaining + _EPS >= need and len(b.units) < max_cuts:
                if not tightest:
                    target = b
                    break
                if target is None or b.remaining < target.remaining - _EPS:
                    target = b
        if target is None:
            target = new_bar(u)
            bars.append(target)
        target.units.append(u)
        target.remaining -= need

    return bars


def first_fit_bars(
    units: Sequence[DemandUnit],
    stock_length: float,
    constraints: OptimizationConstraints,
) -> List[List[DemandUnit]]:
    """First-fit in the given order; returns the piece list of each bar."""
    room = constraints.usable_length(stock_length)
    bars = _fit_bars(units, constraints, lambda u: _OpenBar(room, stock_length), tightest=False)
    return [b.units for b in bars]


def best_fit_bars(
    units: Sequence[DemandUnit],
    stock_length: float,
    constraints: OptimizationConstraints,
) -> List[List[DemandUnit]]:
    """Best-fit in the given order: tightest sufficient room, earliest bar on ties."""
    room = constraints.usable_length(stock_length)
    bars = _fit_bars(units, constraints, lambda u: _OpenBar(room, stock_length), tightest=True)
    return [b.units for b in bars]


def pick_stock_length(
    piece_length: float,
    stock_lengths: Sequence[float],
    constraints: OptimizationConstraints,
) -> Optional[float]:
    """
    Stock length for a bar that starts with `piece_length`: the one with the
    least offcut per piece when filled with that length only. Shorter stock
    wins ties; None when no length can hold the piece.
    """
    step = piece_length + constraints.kerf_width
    best: Optional[float] = None
    best_waste = float("inf")
    for s in sorted(set(float(x) for x in stock_lengths)):
        if piece_length > constraints.max_piece_length(s) + _EPS:
            continue
        n = min(int((constraints.usable_length(s) + _EPS) // step), constraints.max_cuts_per_stock)
        per_piece = (s - n * step - 2 * constraints.safety_margin) / n
        if per_piece < best_waste - _EPS:
            best, best_waste = s, per_piece
    return best


def _shortest_holding(bar: _OpenBar, stock_lengths: Sequence[float], constraints: OptimizationConstraints) -> float:
    used = sum(u.length for u in bar.units) + constraints.kerf_width * len(bar.units)
    for s in stock_lengths:
        if s <= bar.stock_length and constraints.usable_length(s) + _EPS >= used:
            return s
    return bar.stock_length


def pack_mixed(
    units: Sequence[DemandUnit],
    stock_lengths: Sequence[float],
    constraints: OptimizationConstraints,
    *,
    best_fit: bool = False,
) -> List[Cut]:
    """FFD (or BFD with best_fit=True) where every bar picks its own stock length."""
    lengths = sorted(set(float(s) for s in stock_lengths))
    if not lengths:
        raise InvalidCuttingParameters("No stock lengths to choose from", {"stockLengths": []})
    check_fits(units, lengths[-1], constraints)

    def new_bar(u: DemandUnit) -> _OpenBar:
        s = pick_stock_length(u.length, lengths, constraints)
        if s is None:
            s = lengths[-1]
        return _OpenBar(constraints.usable_length(s), s)

    bars = _fit_bars(sort_decreasing(units), constraints, new_bar, tightest=best_fit)
    return [
        make_cut(k, _shortest_holding(b, lengths, constraints), b.units, constraints)
        for k, b in enumerate(bars)
    ]


def pack_in_order(
    units: Sequence[DemandUnit],
    stock_length: float,
    constraints: OptimizationConstraints,
    *,
    validate: bool = True,
) -> List[Cut]:
    if validate:
        check_fits(units, stock_length, constraints)
    return freeze_bars(first_fit_bars(units, stock_length, constraints), stock_length, constraints)


def pack_ffd(units: Sequence[DemandUnit], stock_length: float, constraints: OptimizationConstraints) -> List[Cut]:
    check_fits(units, stock_length, constraints)
    bars = first_fit_bars(sort_decreasing(units), stock_length, constraints)
    return freeze_bars(bars, stock_length, constraints)


def pack_bfd(units: Sequence[DemandUnit], stock_length: float, constraints: OptimizationConstraints) -> List[Cut]:
    check_fits(units, stock_length, constraints)
    bars = best_fit_bars(sort_decreasing(units), stock_length, constraints)
    return freeze_bars(bars, stock_length, constraints)
