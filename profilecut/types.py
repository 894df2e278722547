# profilecut/types.py
# Core data structures for 1D profile cutting (stock bars -> pieces).
# Keep this file dependency-light so it can be imported everywhere.

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class WasteCategory(str, Enum):
    MINIMAL = "minimal"      # < 50mm
    SMALL = "small"          # 50-150mm
    MEDIUM = "medium"        # 150-300mm
    LARGE = "large"          # 300-500mm
    EXCESSIVE = "excessive"  # > 500mm


class Algorithm(str, Enum):
    FFD = "ffd"
    BFD = "bfd"
    GENETIC = "genetic"
    POOLING = "pooling"


def waste_category(remaining_length: float) -> WasteCategory:
    if remaining_length < 50:
        return WasteCategory.MINIMAL
    if remaining_length < 150:
        return WasteCategory.SMALL
    if remaining_length < 300:
        return WasteCategory.MEDIUM
    if remaining_length < 500:
        return WasteCategory.LARGE
    return WasteCategory.EXCESSIVE


# ----------------------------
# Inputs
# ----------------------------

@dataclass(frozen=True)
class OptimizationItem:
    """One demand line. `profile_type` is an opaque key (any non-empty name)."""
    profile_type: str
    length: float
    quantity: int = 1
    tolerance: Optional[float] = None
    priority: Optional[Priority] = None
    work_order_id: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    original_index: int = 0

    @property
    def total_length(self) -> float:
        return self.length * self.quantity


@dataclass(frozen=True)
class DemandUnit:
    """A single piece (expanded from quantity)."""
    uid: str              # unique id, e.g. "3#2" (item 3, second piece)
    item_index: int       # OptimizationItem.original_index
    profile_type: str
    length: float
    work_order_id: Optional[str] = None


def expand_items(items: Iterable[OptimizationItem]) -> List[DemandUnit]:
    """Expand quantity into unit demands (stable order)."""
    out: List[DemandUnit] = []
    for it in items:
        for k in range(1, it.quantity + 1):
            out.append(
                DemandUnit(
                    uid=f"{it.original_index}#{k}",
                    item_index=it.original_index,
                    profile_type=it.profile_type,
                    length=it.length,
                    work_order_id=it.work_order_id,
                )
            )
    return out


def compact_demands(items: Iterable[OptimizationItem]) -> List[Tuple[float, int]]:
    """Aggregate demand as (length, count) records, longest first."""
    counts: Dict[float, int] = {}
    for it in items:
        counts[it.length] = counts.get(it.length, 0) + it.quantity
    return sorted(counts.items(), key=lambda t: -t[0])


@dataclass(frozen=True)
class OptimizationConstraints:
    kerf_width: float = 3.5           # blade width consumed per cut (mm)
    safety_margin: float = 2.0        # trim reserved at each stock end (mm)
    min_scrap_length: float = 75.0    # shorter leftovers are waste, not reusable stock
    max_cuts_per_stock: int = 50
    max_waste_percentage: float = 10.0  # advisory
    allow_partial_stocks: bool = True
    reclaim_waste_only: bool = False

    def usable_length(self, stock_length: float) -> float:
        return stock_length - 2 * self.safety_margin

    def max_piece_length(self, stock_length: float) -> float:
        """Longest single piece a bar of this length can deliver."""
        return self.usable_length(stock_length) - self.kerf_width


@dataclass(frozen=True)
class MaterialStockLength:
    """Catalog entry: one stock length available for a profile type."""
    profile_type: str
    stock_length: float
    cost_per_mm: Optional[float] = None
    cost_per_stock: Optional[float] = None
    availability: Optional[int] = None
    material_grade: str = ""


# ----------------------------
# Outputs / plan objects
# ----------------------------

@dataclass(frozen=True)
class CuttingSegment:
    """Piece(s) cut from one bar. Positions are measured from the raw stock start."""
    sequence: int
    length: float
    position: float
    item_index: int
    profile_type: str
    quantity: int = 1
    work_order_id: Optional[str] = None

    @property
    def end_position(self) -> float:
        return self.position + self.length * self.quantity


@dataclass(frozen=True)
class Cut:
    """
    One physical stock bar and what is cut from it.
    Derived lengths are computed once at construction:
      used_length = pieces + kerf per piece + safety margin at both ends
      remaining_length = stock_length - used_length
    """
    stock_index: int
    stock_length: float
    profile_type: str
    segments: Tuple[CuttingSegment, ...]
    kerf_width: float
    safety_margin: float
    min_scrap_length: float
    work_order_breakdown: Tuple[Tuple[str, int], ...] = ()
    pool_key: Optional[str] = None

    segment_count: int = field(init=False)
    pieces_length: float = field(init=False)
    used_length: float = field(init=False)
    remaining_length: float = field(init=False)

    def __post_init__(self):
        count = 0
        pieces = 0.0
        for s in self.segments:
            count += s.quantity
            pieces += s.length * s.quantity
        used = pieces + count * self.kerf_width
        if count:
            used += 2 * self.safety_margin
        object.__setattr__(self, "segment_count", count)
        object.__setattr__(self, "pieces_length", pieces)
        object.__setattr__(self, "used_length", used)
        object.__setattr__(self, "remaining_length", self.stock_length - used)

    @property
    def kerf_loss(self) -> float:
        return self.segment_count * self.kerf_width

    @property
    def waste_category(self) -> WasteCategory:
        return waste_category(self.remaining_length)

    @property
    def is_reclaimable(self) -> bool:
        return self.remaining_length >= self.min_scrap_length

    @property
    def is_mixed(self) -> bool:
        return len(self.work_order_breakdown) > 1

    @property
    def pattern(self) -> Tuple[float, ...]:
        out: List[float] = []
        for s in self.segments:
            out.extend([s.length] * s.quantity)
        return tuple(sorted(out, reverse=True))

    @property
    def plan_label(self) -> str:
        """e.g. '2 x 1500 + 1 x 1000'"""
        counts: Dict[float, int] = {}
        for s in self.segments:
            counts[s.length] = counts.get(s.length, 0) + s.quantity
        parts = [f"{n} x {_fmt_len(length)}" for length, n in sorted(counts.items(), key=lambda t: -t[0])]
        return " + ".join(parts)


def _fmt_len(x: float) -> str:
    return str(int(x)) if float(x).is_integer() else f"{x:g}"


# ----------------------------
# Helper utilities
# ----------------------------

def make_cut(
    stock_index: int,
    stock_length: float,
    units: Sequence[DemandUnit],
    constraints: OptimizationConstraints,
    *,
    pool_key: Optional[str] = None,
    batch: bool = False,
) -> Cut:
    """
    Freeze an ordered list of unit demands into a Cut.
    With batch=True, consecutive pieces of the same item are merged into one
    segment with quantity > 1 (pooled patterns).
    """
    kerf = constraints.kerf_width
    pos = constraints.safety_margin
    segments: List[CuttingSegment] = []
    breakdown: Dict[str, int] = {}
    profile = units[0].profile_type if units else ""

    for u in units:
        wo = u.work_order_id or ""
        breakdown[wo] = breakdown.get(wo, 0) + 1
        if batch and segments:
            last = segments[-1]
            if last.item_index == u.item_index and last.length == u.length:
                segments[-1] = CuttingSegment(
                    sequence=last.sequence,
                    length=last.length,
                    position=last.position,
                    item_index=last.item_index,
                    profile_type=last.profile_type,
                    quantity=last.quantity + 1,
                    work_order_id=last.work_order_id,
                )
                pos += u.length + kerf
                continue
        segments.append(
            CuttingSegment(
                sequence=len(segments) + 1,
                length=u.length,
                position=pos,
                item_index=u.item_index,
                profile_type=u.profile_type,
                work_order_id=u.work_order_id,
            )
        )
        pos += u.length + kerf

    return Cut(
        stock_index=stock_index,
        stock_length=stock_length,
        profile_type=profile,
        segments=tuple(segments),
        kerf_width=kerf,
        safety_margin=constraints.safety_margin,
        min_scrap_length=constraints.min_scrap_length,
        work_order_breakdown=tuple(breakdown.items()),
        pool_key=pool_key,
    )


def renumber_cuts(cuts: Iterable[Cut], start: int = 0) -> List[Cut]:
    """Reassign stock_index sequentially (after merging plans from several groups)."""
    out: List[Cut] = []
    for k, c in enumerate(cuts, start=start):
        out.append(
            Cut(
                stock_index=k,
                stock_length=c.stock_length,
                profile_type=c.profile_type,
                segments=c.segments,
                kerf_width=c.kerf_width,
                safety_margin=c.safety_margin,
                min_scrap_length=c.min_scrap_length,
                work_order_breakdown=c.work_order_breakdown,
                pool_key=c.pool_key,
            )
        )
    return out


def quantities_by_item(cuts: Iterable[Cut]) -> Dict[int, int]:
    """Sum of segment quantities per originating item index."""
    out: Dict[int, int] = {}
    for c in cuts:
        for s in c.segments:
            out[s.item_index] = out.get(s.item_index, 0) + s.quantity
    return out
