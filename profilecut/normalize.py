# profilecut/normalize.py
# Item normalizer: raw request rows -> validated OptimizationItem list.
#
# Accepted row keys (camelCase from the REST layer or snake_case):
#   profileType / profile_type   (required, any non-empty name)
#   length                       (mm, 10..20000)
#   quantity                     (integer, 1..1000)
#   tolerance, priority, workOrderId / work_order_id, metadata
#   color / size / note / ...    (folded into metadata)
#
# Invalid rows are never clamped or dropped silently: by default the first bad
# row fails the whole batch; with collect_errors=True every error is collected
# and the valid rows are still returned.

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .config import DEFAULTS, Defaults
from .errors import ValidationError
from .types import OptimizationItem, Priority

_PROFILE_KEYS = ("profileType", "profile_type", "profile")
_WORK_ORDER_KEYS = ("workOrderId", "work_order_id")
_KNOWN_KEYS = set(_PROFILE_KEYS) | set(_WORK_ORDER_KEYS) | {
    "length", "quantity", "tolerance", "priority", "metadata",
}


@dataclass(frozen=True)
class NormalizeResult:
    items: List[OptimizationItem]
    errors: List[ValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _first(row: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for k in keys:
        if k in row and row[k] is not None:
            return row[k]
    return None


def _as_number(value: Any, name: str, index: int) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"Item {index}: {name} must be a number", field=name, index=index)
    try:
        x = float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Item {index}: {name} must be a number (got {value!r})", field=name, index=index
        ) from None
    if math.isnan(x) or math.isinf(x):
        raise ValidationError(f"Item {index}: {name} must be finite", field=name, index=index)
    return x


def normalize_item(row: Mapping[str, Any], index: int, defaults: Defaults = DEFAULTS) -> OptimizationItem:
    """Validate one row. Raises ValidationError naming the field and row index."""
    if not isinstance(row, Mapping):
        raise ValidationError(f"Item {index}: expected an object", field="item", index=index)

    profile = _first(row, _PROFILE_KEYS)
    if not isinstance(profile, str) or not profile.strip():
        raise ValidationError(f"Item {index}: profileType is required", field="profileType", index=index)

    if row.get("length") is None:
        raise ValidationError(f"Item {index}: length is required", field="length", index=index)
    length = _as_number(row["length"], "length", index)
    if not (defaults.min_cut_length <= length <= defaults.max_cut_length):
        raise ValidationError(
            f"Item {index}: length {length:g} outside [{defaults.min_cut_length:g}, {defaults.max_cut_length:g}] mm",
            {"value": length},
            field="length",
            index=index,
        )

    qty_raw = row.get("quantity", 1)
    qty = _as_number(qty_raw, "quantity", index)
    if not float(qty).is_integer():
        raise ValidationError(f"Item {index}: quantity must be an integer", {"value": qty_raw}, field="quantity", index=index)
    qty_i = int(qty)
    if not (defaults.min_quantity <= qty_i <= defaults.max_quantity):
        raise ValidationError(
            f"Item {index}: quantity {qty_i} outside [{defaults.min_quantity}, {defaults.max_quantity}]",
            {"value": qty_i},
            field="quantity",
            index=index,
        )

    tolerance: Optional[float] = None
    if row.get("tolerance") is not None:
        tolerance = _as_number(row["tolerance"], "tolerance", index)
        if tolerance < 0:
            raise ValidationError(f"Item {index}: tolerance must be >= 0", field="tolerance", index=index)

    priority: Optional[Priority] = None
    if row.get("priority") is not None:
        try:
            priority = Priority(str(row["priority"]).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Item {index}: unknown priority {row['priority']!r}", field="priority", index=index
            ) from None

    work_order = _first(row, _WORK_ORDER_KEYS)
    metadata: Dict[str, str] = {}
    raw_meta = row.get("metadata")
    if isinstance(raw_meta, Mapping):
        metadata.update({str(k): str(v) for k, v in raw_meta.items() if v is not None})
        if work_order is None and raw_meta.get("workOrderId") is not None:
            work_order = raw_meta["workOrderId"]
    for k, v in row.items():
        if k not in _KNOWN_KEYS and v is not None and not isinstance(v, (dict, list)):
            metadata.setdefault(str(k), str(v))

    return OptimizationItem(
        profile_type=profile.strip(),
        length=length,
        quantity=qty_i,
        tolerance=tolerance,
        priority=priority,
        work_order_id=str(work_order) if work_order is not None else None,
        metadata=metadata,
        original_index=index,
    )


def normalize_items(
    rows: Iterable[Mapping[str, Any]],
    *,
    collect_errors: bool = False,
    defaults: Defaults = DEFAULTS,
) -> NormalizeResult:
    """
    Normalize a batch of raw rows.
    Fail-fast unless collect_errors=True, in which case the result carries both
    the valid items and every ValidationError.
    """
    items: List[OptimizationItem] = []
    errors: List[ValidationError] = []
    for i, row in enumerate(rows):
        try:
            items.append(normalize_item(row, i, defaults))
        except ValidationError as e:
            if not collect_errors:
                raise
            errors.append(e)
    return NormalizeResult(items=items, errors=errors)
