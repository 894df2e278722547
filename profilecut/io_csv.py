# profilecut/io_csv.py
# CSV import/export helpers:
# - read an items list (profile_type,length,quantity[,work_order_id]) as raw rows
# - export the cut list per bar, the segment list (saw operator sheet) and a summary
#
# Rows read here still go through normalize.py; this module only parses text.

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .metrics import PlanMetrics
from .types import Cut

_COLUMN_ALIASES = {
    "profile": "profileType",
    "profile_type": "profileType",
    "profiletype": "profileType",
    "length": "length",
    "length_mm": "length",
    "quantity": "quantity",
    "qty": "quantity",
    "work_order_id": "workOrderId",
    "workorderid": "workOrderId",
    "work_order": "workOrderId",
    "priority": "priority",
    "tolerance": "tolerance",
}


def read_items_csv(path: str | Path) -> List[Dict[str, Any]]:
    """
    Read items CSV into request-style rows (camelCase keys).
    Unknown columns are kept as-is (they end up in item metadata); empty cells are dropped.
    """
    path = Path(path)
    rows: List[Dict[str, Any]] = []
    with path.open("r", newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValueError(f"{path}: empty CSV (missing header row)")
        for raw in reader:
            row: Dict[str, Any] = {}
            for k, v in raw.items():
                if k is None or v is None:
                    continue
                v = v.strip()
                if v == "":
                    continue
                key = _COLUMN_ALIASES.get(k.strip().lower(), k.strip())
                row[key] = v
            if row:
                rows.append(row)
    return rows


def export_cuts_csv(cuts: Sequence[Cut], path: str | Path) -> None:
    """One row per stock bar."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = [
        "stock_index",
        "profile_type",
        "stock_length",
        "plan",
        "segment_count",
        "used_length",
        "remaining_length",
        "waste_category",
        "reclaimable",
        "work_orders",
    ]

    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        for c in cuts:
            w.writerow(
                {
                    "stock_index": c.stock_index,
                    "profile_type": c.profile_type,
                    "stock_length": c.stock_length,
                    "plan": c.plan_label,
                    "segment_count": c.segment_count,
                    "used_length": round(c.used_length, 3),
                    "remaining_length": round(c.remaining_length, 3),
                    "waste_category": c.waste_category.value,
                    "reclaimable": int(c.is_reclaimable),
                    "work_orders": ";".join(f"{wo or '-'}:{n}" for wo, n in c.work_order_breakdown),
                }
            )


def export_segments_csv(cuts: Sequence[Cut], path: str | Path) -> None:
    """
    One row per segment. Positions are measured from the raw stock start
    (the first piece starts after the safety margin).
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = [
        "stock_index",
        "sequence",
        "item_index",
        "profile_type",
        "length",
        "quantity",
        "position",
        "end_position",
        "work_order_id",
    ]

    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        for c in cuts:
            for s in c.segments:
                w.writerow(
                    {
                        "stock_index": c.stock_index,
                        "sequence": s.sequence,
                        "item_index": s.item_index,
                        "profile_type": s.profile_type,
                        "length": s.length,
                        "quantity": s.quantity,
                        "position": round(s.position, 3),
                        "end_position": round(s.end_position, 3),
                        "work_order_id": s.work_order_id or "",
                    }
                )


def export_summary_csv(metrics: PlanMetrics, path: str | Path, *, algorithm: str = "") -> None:
    """
    Single-row plan summary (useful for quick costing).
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = [
        "algorithm",
        "stock_count",
        "total_stock_length",
        "pieces_length",
        "total_waste",
        "waste_percentage",
        "efficiency",
        "reclaimable_waste",
        "segment_count",
        "distinct_patterns",
        "total_cost",
        "quality_score",
    ]

    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        w.writerow(
            {
                "algorithm": algorithm,
                "stock_count": metrics.stock_count,
                "total_stock_length": metrics.total_stock_length,
                "pieces_length": metrics.pieces_length,
                "total_waste": round(metrics.total_waste, 3),
                "waste_percentage": round(metrics.waste_percentage, 3),
                "efficiency": round(metrics.efficiency, 3),
                "reclaimable_waste": round(metrics.reclaimable_waste, 3),
                "segment_count": metrics.segment_count,
                "distinct_patterns": metrics.distinct_patterns,
                "total_cost": round(metrics.total_cost, 2),
                "quality_score": round(metrics.quality_score, 3),
            }
        )


def export_all(
    cuts: Sequence[Cut],
    metrics: PlanMetrics,
    out_dir: str | Path,
    prefix: str = "plan",
    *,
    algorithm: str = "",
) -> None:
    """
    Export cuts, segments and summary into out_dir.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    export_cuts_csv(cuts, out_dir / f"{prefix}_cuts.csv")
    export_segments_csv(cuts, out_dir / f"{prefix}_segments.csv")
    export_summary_csv(metrics, out_dir / f"{prefix}_summary.csv", algorithm=algorithm)
