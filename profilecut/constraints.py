# profilecut/constraints.py
# Constraint resolver: request overrides + defaults -> one OptimizationConstraints.
#
# Constraints are operational policy, not business data: out-of-range numbers
# are clamped (and reported), only malformed values are rejected.

from __future__ import annotations

import math
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .config import DEFAULTS, Defaults, clamp_float, clamp_int
from .errors import ValidationError
from .logger import Logger, get_logger
from .types import OptimizationConstraints

# request key -> dataclass field
_ALIASES: Dict[str, str] = {
    "kerfWidth": "kerf_width",
    "safetyMargin": "safety_margin",
    "minScrapLength": "min_scrap_length",
    "maxCutsPerStock": "max_cuts_per_stock",
    "maxWastePercentage": "max_waste_percentage",
    "allowPartialStocks": "allow_partial_stocks",
    "reclaimWasteOnly": "reclaim_waste_only",
}
_BOOL_FIELDS = ("allow_partial_stocks", "reclaim_waste_only")


def _ranges(defaults: Defaults) -> Dict[str, Tuple[float, float]]:
    return {
        "kerf_width": defaults.kerf_range,
        "safety_margin": defaults.safety_margin_range,
        "min_scrap_length": defaults.min_scrap_range,
        "max_cuts_per_stock": defaults.max_cuts_range,
        "max_waste_percentage": defaults.max_waste_pct_range,
    }


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in ("1", "true", "yes", "y", "t"):
        return True
    if s in ("0", "false", "no", "n", "f"):
        return False
    raise ValidationError(f"Constraint {name} must be a boolean (got {value!r})", field=name)


def _parse_number(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"Constraint {name} must be a number", field=name)
    try:
        x = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Constraint {name} must be a number (got {value!r})", field=name) from None
    if math.isnan(x):
        raise ValidationError(f"Constraint {name} must be a number (got NaN)", field=name)
    return x


def resolve_constraints(
    overrides: Optional[Mapping[str, Any]] = None,
    base: Optional[OptimizationConstraints] = None,
    *,
    defaults: Defaults = DEFAULTS,
    notes: Optional[List[str]] = None,
    logger: Optional[Logger] = None,
) -> OptimizationConstraints:
    """
    Merge request overrides into `base` (defaults.default_constraints if None).
    Every numeric field, including the base values, ends up inside its valid range.
    Clamps are logged as warnings and appended to `notes` when given.
    """
    log = logger or get_logger()
    base = base or defaults.default_constraints
    ranges = _ranges(defaults)

    values: Dict[str, Any] = {
        "kerf_width": base.kerf_width,
        "safety_margin": base.safety_margin,
        "min_scrap_length": base.min_scrap_length,
        "max_cuts_per_stock": base.max_cuts_per_stock,
        "max_waste_percentage": base.max_waste_percentage,
        "allow_partial_stocks": base.allow_partial_stocks,
        "reclaim_waste_only": base.reclaim_waste_only,
    }

    if overrides is None:
        overrides = {}
    if not isinstance(overrides, Mapping):
        raise ValidationError(
            f"constraints must be an object (got {type(overrides).__name__})", field="constraints"
        )

    for key, raw in overrides.items():
        name = _ALIASES.get(key, key)
        if name not in values:
            raise ValidationError(f"Unknown constraint {key!r}", field=key)
        if raw is None:
            continue
        if name in _BOOL_FIELDS:
            values[name] = _parse_bool(key, raw)
        else:
            values[name] = _parse_number(key, raw)

    for name, (lo, hi) in ranges.items():
        v = values[name]
        if name == "max_cuts_per_stock":
            clamped: float = clamp_int(v, int(lo), int(hi))
        else:
            clamped = clamp_float(v, lo, hi)
        if clamped != v:
            msg = f"Constraint {name}={v:g} clamped to {clamped:g} (valid range {lo:g}..{hi:g})"
            log.warn(msg)
            if notes is not None:
                notes.append(msg)
        values[name] = clamped

    return replace(
        base,
        kerf_width=float(values["kerf_width"]),
        safety_margin=float(values["safety_margin"]),
        min_scrap_length=float(values["min_scrap_length"]),
        max_cuts_per_stock=int(values["max_cuts_per_stock"]),
        max_waste_percentage=float(values["max_waste_percentage"]),
        allow_partial_stocks=bool(values["allow_partial_stocks"]),
        reclaim_waste_only=bool(values["reclaim_waste_only"]),
    )
