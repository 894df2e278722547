# profilecut/io_json.py
# Load a job JSON (the same shape Optimizer.handle_request accepts) from disk.
#
# Expected JSON shape:
# {
#   "algorithm": "bfd",
#   "items": [{"profileType": "AL-40x40", "length": 1500, "quantity": 3, "workOrderId": "WO-1"}, ...],
#   "constraints": {"kerfWidth": 3.5, "safetyMargin": 2},
#   "stockLengths": [6000, 6500],
#   "materialStockLengths": [{"profileType": "AL-40x40", "stockLength": 6100, "costPerMm": 0.04}]
# }

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict


def load_job_json(path: str | Path) -> Dict[str, Any]:
    """
    Read a job file. Only the structure is checked here; field validation
    happens in the normalizer and constraint resolver.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"{path}: job JSON must be an object")

    items = data.get("items")
    if not items:
        raise ValueError(f"{path}: JSON missing 'items'.")
    if not isinstance(items, list):
        raise ValueError(f"{path}: 'items' must be a list")

    # Single stock length convenience
    if "stockLengths" not in data and "stockLength" in data:
        data["stockLengths"] = [data["stockLength"]]

    return data


def dump_job_json(job: Dict[str, Any], path: str | Path, *, indent: int = 2) -> None:
    """Write a job file (e.g. a generated sample) so it can be replayed through the CLI."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(job, f, ensure_ascii=False, indent=indent)
