# profilecut/sample_data.py
# Utilities to generate sample / random demand lists for quick benchmarking and tuning.
# Produces request-style rows (camelCase), so the output can go straight into
# normalize_items() or Optimizer.handle_request().

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple


@dataclass(frozen=True)
class RandomItemsConfig:
    seed: int = 123
    n_unique: int = 25
    qty_range: Tuple[int, int] = (1, 6)

    profiles: Tuple[str, ...] = ("AL-40x40", "AL-40x80", "AL-20x20")
    work_orders: Tuple[str, ...] = ("WO-1001", "WO-1002", "WO-1003", "WO-1004")

    # length ranges (mm)
    length_range: Tuple[int, int] = (250, 2400)

    # probability a line is a long "frame" piece
    p_long: float = 0.20
    long_range: Tuple[int, int] = (2500, 4200)

    # probability a line is a short "bracket" piece
    p_short: float = 0.15
    short_range: Tuple[int, int] = (40, 240)


def generate_random_items(cfg: RandomItemsConfig) -> List[Dict[str, Any]]:
    """
    Generate demand rows with profile, length, quantity and work order.
    Designed to resemble window/facade job mixes: some long frame members,
    some short brackets, the rest mid-length mullions and rails.
    """
    rnd = random.Random(cfg.seed)
    rows: List[Dict[str, Any]] = []

    for _ in range(cfg.n_unique):
        r = rnd.random()
        if r < cfg.p_long:
            length = rnd.randint(*cfg.long_range)
        elif r < cfg.p_long + cfg.p_short:
            length = rnd.randint(*cfg.short_range)
        else:
            length = rnd.randint(*cfg.length_range)

        rows.append(
            {
                "profileType": rnd.choice(cfg.profiles),
                "length": int(length),
                "quantity": rnd.randint(*cfg.qty_range),
                "workOrderId": rnd.choice(cfg.work_orders),
            }
        )

    return rows


def uniform_items(
    count: int,
    *,
    profile_type: str = "AL-40x40",
    length_range: Tuple[int, int] = (200, 2000),
    seed: int = 7,
) -> List[Dict[str, Any]]:
    """`count` single-piece rows of one profile (for large-input timing runs)."""
    rnd = random.Random(seed)
    return [
        {"profileType": profile_type, "length": rnd.randint(*length_range), "quantity": 1}
        for _ in range(count)
    ]


def total_units(rows: Sequence[Dict[str, Any]]) -> int:
    return sum(int(r.get("quantity", 1)) for r in rows)
